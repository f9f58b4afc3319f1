"""Delete ECR images that no workload references."""

__version__ = "0.1.0"
