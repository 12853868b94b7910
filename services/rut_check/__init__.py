"""
RUT check service

Chilean RUT (Rol Único Tributario) tooling with:
- Módulo 11 check digit validation and canonical formatting
- Bulk normalization of CSV/Excel imports
- Pydantic settings for configuration
- Structured JSON logging with structlog
- CLI interface
"""

__version__ = "0.1.0"
