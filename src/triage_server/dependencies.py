"""FastAPI dependency injection — provides the template store and session
registry stashed on ``app.state`` during lifespan.
"""

from fastapi import Request

from triage_forms.template import TemplateStore

from triage_server.registry import SessionRegistry


def get_template_store(request: Request) -> TemplateStore:
    """Return the TemplateStore singleton from ``app.state``."""
    return request.app.state.templates


def get_registry(request: Request) -> SessionRegistry:
    """Return the in-process session registry from ``app.state``."""
    return request.app.state.registry
