"""Configuration for hazardwatch: environment settings and YAML source config."""
