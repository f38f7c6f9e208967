from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    text: str = Field(..., max_length=4000)


class MessageUpdate(BaseModel):
    text: str = Field(..., max_length=4000)


class MessageSchema(BaseModel):
    id: int
    sender_id: str
    recipient_id: str
    text: str
    created_at: datetime
    edited_at: Optional[datetime] = None
    is_deleted: bool = False

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    success: bool = True
    message: MessageSchema


class MessagesResponse(BaseModel):
    success: bool = True
    messages: List[MessageSchema]
