"""Loopwell.

This package contains the server side of Loopwell, a multi-tenant workspace
application that combines project and task management, a wiki, an org chart
and an AI assistant layered over workspace data.

High-level architecture
-----------------------

Every HTTP handler follows the same shape: authenticate the caller, resolve
the active workspace, assert a role, then read or mutate rows through a
repository and return JSON.

Core subpackages
----------------

- ``loopwell.core``:

  - Logging, monitoring and the domain error hierarchy.
  - SQLModel entities, async repositories and the I/O schemas.

- ``loopwell.assistant``:

  - The LLM model catalog, provider routing (OpenAI, Anthropic, Google) on top
    of pydantic-ai, and the workspace-aware chat flow.

- ``loopwell.integrations``:

  - One-shot importers (ClickUp, Slite) that turn third-party content into
    wiki pages.

- ``loopwell.realtime``:

  - Best-effort event relay (project and wiki rooms, presence) with an
    in-memory mock used when realtime delivery is disabled.

- ``loopwell.server``:

  - The FastAPI application, configuration, routers and exception handlers.
"""
