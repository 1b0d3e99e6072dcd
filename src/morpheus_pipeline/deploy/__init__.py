from morpheus_pipeline.deploy.base import DeployService
from morpheus_pipeline.deploy.http import DeployConfig, HttpDeployService
from morpheus_pipeline.deploy.local import LocalDeployService

__all__ = ["DeployConfig", "DeployService", "HttpDeployService", "LocalDeployService"]
