"""
Company Pipeline Backend: Application Package Initializer
=========================================================

What: Marks the `company_pipeline` directory as a Python package.
Who:  Used by pytest, uvicorn and every `from company_pipeline... import` in the app.

Architecture Note:
    The backend is a thin HTTP shell around an in-process request pipeline:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← decode body, call Dispatcher, encode result
    ├─────────────────────────────────────┤
    │     Mediator (Dispatcher + chain)   │  ← ordered behaviors around one handler
    ├─────────────────────────────────────┤
    │   Services (behaviors, handlers)    │  ← key/hash enrichment, record creation
    ├─────────────────────────────────────┤
    │          Schemas (Pydantic)         │  ← request/response contracts
    └─────────────────────────────────────┘

    The mediator layer knows nothing about HTTP; routes know nothing about
    which behaviors run. Wiring happens once at startup in `pipeline.py`.
"""

__version__ = "1.0.0"
