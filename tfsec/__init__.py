"""Severities, rule matching, root module discovery and result filtering for Terraform security analysis."""

__version__ = "0.1.0"
__all__ = ["rule", "scanner", "severity"]