"""Building blocks for collecting Kubernetes control plane metrics and shaping them into entities."""

__version__ = "0.1.0"