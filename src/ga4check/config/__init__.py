"""Settings, form models and per-site configuration loading."""

from .settings import Settings
from .models import FormConfig, FormFieldConfig, SubmissionScenario

__all__ = [
    'Settings',
    'FormConfig',
    'FormFieldConfig',
    'SubmissionScenario',
]
