"""
Pydantic schemas for the chunked banner upload endpoints

Wire names are camelCase (sessionId, chunkIndex, ...); every field is optional
at the schema level so missing fields surface as a 400 from the service
instead of a framework validation error.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, StrictInt


class ChunkUploadRequest(BaseModel):
    """One base64 fragment of a larger file"""
    session_id: Optional[str] = Field(None, alias="sessionId")
    chunk_index: Optional[StrictInt] = Field(None, alias="chunkIndex")
    chunk_data: Optional[str] = Field(None, alias="chunkData")
    total_chunks: Optional[StrictInt] = Field(None, alias="totalChunks")
    # Metadata is only kept from the chunk that creates the session
    filename: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None

    class Config:
        populate_by_name = True


class ChunkProgressResponse(BaseModel):
    """Acknowledgement while the session is still missing chunks"""
    message: str = "Chunk received"
    session_id: str = Field(..., alias="sessionId")
    received_chunks: int = Field(..., alias="receivedChunks")
    total_chunks: int = Field(..., alias="totalChunks")

    class Config:
        populate_by_name = True


class UploadSessionStatus(BaseModel):
    session_id: str = Field(..., alias="sessionId")
    total_chunks: int = Field(..., alias="totalChunks")
    received_chunks: int = Field(..., alias="receivedChunks")
    received_indices: list[int] = Field(..., alias="receivedIndices")
    expires_at: datetime = Field(..., alias="expiresAt")

    class Config:
        populate_by_name = True


class UploadErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None
