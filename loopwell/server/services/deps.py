"""
Request Dependencies.

Annotated dependency aliases shared by the API endpoints.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from loopwell.assistant.providers import LLMClient, get_llm_client
from loopwell.core.database import get_session
from loopwell.realtime import RealtimeHub, get_realtime_hub
from loopwell.server.services.auth import AuthContext, Identity, get_auth_context, get_identity

SessionDep = Annotated[AsyncSession, Depends(get_session)]
AuthDep = Annotated[AuthContext, Depends(get_auth_context)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
LLMClientDep = Annotated[LLMClient, Depends(get_llm_client)]
RealtimeDep = Annotated[RealtimeHub, Depends(get_realtime_hub)]
