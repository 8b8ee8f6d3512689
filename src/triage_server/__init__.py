"""triage_server — FastAPI REST API for the triage form engine.

Hosts in-process form sessions (one per template and technology) and
exposes stateless template evaluation and scoring endpoints.
"""
