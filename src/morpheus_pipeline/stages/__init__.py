"""The five pipeline stage workers."""

from morpheus_pipeline.stages.architect import Architect
from morpheus_pipeline.stages.code_generator import CodeGenerator
from morpheus_pipeline.stages.deployment import DeploymentEngine
from morpheus_pipeline.stages.requirements import RequirementsAnalyzer
from morpheus_pipeline.stages.ui_generator import UIGenerator

__all__ = [
    "Architect",
    "CodeGenerator",
    "DeploymentEngine",
    "RequirementsAnalyzer",
    "UIGenerator",
]
