"""ArtShelf - personal artwork library ingestion."""

__version__ = "0.1.0"
