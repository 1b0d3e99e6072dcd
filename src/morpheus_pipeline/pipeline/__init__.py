from morpheus_pipeline.pipeline.build import Build, BuildError
from morpheus_pipeline.pipeline.orchestrator import PipelineOrchestrator
from morpheus_pipeline.pipeline.registry import BuildRegistry

__all__ = ["Build", "BuildError", "BuildRegistry", "PipelineOrchestrator"]
