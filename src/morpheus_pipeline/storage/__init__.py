from morpheus_pipeline.storage.base import ArtifactStore, InMemoryArtifactStore

__all__ = ["ArtifactStore", "InMemoryArtifactStore"]
