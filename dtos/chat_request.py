from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Loosely typed so that blank/oversized/non-string messages get the API's own 400 messages
    message: Any = None
    thread_id: Optional[str] = Field(default=None, alias="threadId", description="Existing thread; omit to start a new one")


class StartConversationRequest(BaseModel):
    message: Any = None
    title: Optional[str] = Field(default=None, description="Explicit title; derived from the message when omitted")
