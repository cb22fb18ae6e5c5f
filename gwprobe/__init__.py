"""Probe targets and load-balancer status for Gateway API based ingresses."""

__version__ = "0.1.0"
__all__ = ["model", "lister", "ingress"]