from pydantic import BaseModel, Field


class UploadCompleteRequest(BaseModel):
    key: str = Field(min_length=1)
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    is_subscribed: bool = False


class RetryRequest(BaseModel):
    is_subscribed: bool = False


class SendMessageRequest(BaseModel):
    file_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
