"""
Validation subsystem.

Low-level input validation shared by every service. Business rules stay in
the domain models and services.
"""

from src.core.validation.input_validator import InputValidator

__all__ = ["InputValidator"]
