"""Build Kubernetes objects, pod identities and placement instances for M3DB clusters."""

__version__ = "0.1.0"