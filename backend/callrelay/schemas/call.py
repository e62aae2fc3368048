from typing import List, Literal, Optional
from pydantic import BaseModel, Field

# Values of call_logs.call_status
CallLogStatus = Literal["completed", "missed", "declined", "cancelled", "failed", "expired"]


class CallInfoRequest(BaseModel):
    booking_id: str = Field(alias="bookingId")
    caller_type: Optional[Literal["user", "provider"]] = Field(None, alias="callerType")


class CallInfoResponse(BaseModel):
    booking_id: str
    caller_id: str
    caller_name: str
    receiver_id: str
    receiver_name: str
    service_name: Optional[str]
    receiver_online: Optional[bool]


class CallLogRequest(BaseModel):
    booking_id: str = Field(alias="bookingId")
    duration: int = Field(ge=0)
    caller_type: Literal["user", "provider"] = Field(alias="callerType")
    status: CallLogStatus = "completed"


class CallLogResponse(BaseModel):
    id: str
    message: str


class CallLogItem(BaseModel):
    id: str
    booking_id: str
    caller_id: Optional[str]
    caller_type: Optional[str]
    call_status: str
    duration: int
    end_reason: Optional[str]
    call_started_at: Optional[str]
    call_ended_at: Optional[str]
    created_at: Optional[str]


class CallHistoryResponse(BaseModel):
    calls: List[CallLogItem]


class ActiveCallResponse(BaseModel):
    booking_id: str
    caller_identity: str
    receiver_identity: str
    status: str
    started_at: str
    accepted_at: Optional[str]
