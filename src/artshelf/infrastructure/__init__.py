"""Infrastructure layer: persistence, discovery providers, observability."""
