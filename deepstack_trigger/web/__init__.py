"""Web interface for the detection trigger service."""

from .app import TriggerWebApp, create_app

__all__ = ['TriggerWebApp', 'create_app']
