"""nodestats: kubelet metrics retrieval agent for Kubernetes clusters."""

__version__ = "0.1.0"
