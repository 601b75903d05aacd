
from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: str  # "system", "user" or "assistant"
    content: str | None = None


class ChatRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    temperature: float = 0.1  # low temperature keeps the JSON shape stable
    stream: bool = False


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage


class ChatResponse(BaseModel):
    id: str | None = None
    choices: list[ChatChoice] = []
