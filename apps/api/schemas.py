# apps/api/schemas.py
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    channel_name: str

class LoginRequest(BaseModel):
    email: str
    password: str

class UserOut(BaseModel):
    id: str
    username: str
    email: str
    channel_name: str
    avatar_url: Optional[str] = None

class Ok(BaseModel):
    ok: bool

class UploaderOut(BaseModel):
    id: str
    username: str
    channel_name: str
    avatar_url: Optional[str] = None

class VideoCard(BaseModel):
    id: str
    title: str
    description: str
    thumbnail_url: Optional[str] = None
    duration_seconds: float
    views: int
    likes: int
    dislikes: int
    category: str
    tags: List[str] = []
    uploader: Optional[UploaderOut] = None
    created_at: datetime
    is_published: bool

class VideoDetail(VideoCard):
    video_url: Optional[str] = None
    uploader_subscribers: int = 0

class VideoDetailResponse(BaseModel):
    video: VideoDetail

# Field names below are part of the public JSON contract
class VideoListResponse(BaseModel):
    videos: List[VideoCard]
    totalPages: int
    currentPage: int
    totalVideos: int

class SearchResponse(VideoListResponse):
    query: str

class VideoCollection(BaseModel):
    videos: List[VideoCard]
    count: int

class RecommendationsResponse(BaseModel):
    recommendations: List[VideoCard]
    count: int

class SimilarVideosResponse(BaseModel):
    similar: List[VideoCard]
    count: int

class ChannelOut(BaseModel):
    id: str
    username: str
    channel_name: str
    channel_description: str = ""
    avatar_url: Optional[str] = None
    subscriber_count: int = 0

class ChannelRecommendationsResponse(BaseModel):
    channels: List[ChannelOut]
    count: int

class SubscriptionOut(BaseModel):
    subscribed: bool
    subscriber_count: int

class ReactionOut(BaseModel):
    active: bool
    likes: int
    dislikes: int

class ViewsOut(BaseModel):
    views: int

class HeartbeatRequest(BaseModel):
    video_id: str
    position_seconds: float = 0.0
    watched_seconds: float = 0.0

class HistoryItem(BaseModel):
    video: VideoCard
    last_position_seconds: float
    watched_seconds: float
    progress_percent: Optional[float] = None
    last_watched_at: datetime

class PaginatedHistory(BaseModel):
    items: List[HistoryItem]
    next_offset: Optional[int] = None
