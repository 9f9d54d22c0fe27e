"""Hazard feed ingestion: endpoints, fetching, classification and the run orchestrator."""

from hazardwatch.ingestion.orchestrator import HazardPipeline, PipelineRunResult, RunStatus

__all__ = ["HazardPipeline", "PipelineRunResult", "RunStatus"]
