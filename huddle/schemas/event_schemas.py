from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .user_schemas import UserSummary

EventType = Literal["in-person", "virtual", "hybrid"]


class TeamRequirements(BaseModel):
    girls_required: int = 0
    boys_required: int = 0

    @property
    def team_size(self) -> int:
        return self.girls_required + self.boys_required


class PrizePool(BaseModel):
    total_amount: float = 0
    first_place: float = 0
    second_place: float = 0
    third_place: float = 0
    consolation_prizes: List[float] = []
    currency: str = "USD"

    @property
    def distributed(self) -> float:
        return self.first_place + self.second_place + self.third_place + sum(self.consolation_prizes)


class Pricing(BaseModel):
    individual: float = 0
    team_leader: float = 0
    team_member: float = 0
    male_price: float = 0
    female_price: float = 0


class EventData(BaseModel):
    """The organizer-editable part of an event."""

    title: str
    description: str = ""
    date: datetime
    location: str
    google_location_link: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: str = "General"
    tags: List[str] = []
    photos: List[str] = []
    cover_photo: Optional[str] = None
    max_participants: int = 0
    team_requirements: TeamRequirements = TeamRequirements()
    price: float = 0
    currency: str = "USD"
    prize_pool: PrizePool = PrizePool()
    pricing: Optional[Pricing] = None
    event_type: EventType = "in-person"
    virtual_meeting_link: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    social_links: Dict[str, str] = {}

    class Config:
        from_attributes = True


class EventCreate(EventData):
    pass


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    google_location_link: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    photos: Optional[List[str]] = None
    cover_photo: Optional[str] = None
    max_participants: Optional[int] = None
    team_requirements: Optional[TeamRequirements] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    prize_pool: Optional[PrizePool] = None
    pricing: Optional[Pricing] = None
    event_type: Optional[EventType] = None
    virtual_meeting_link: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None


# Review state: an event is either published, published with an edit
# awaiting review, or not published yet (pending or rejected).

class PublishedReview(BaseModel):
    state: Literal["published"] = "published"
    data: EventData


class PendingReview(BaseModel):
    state: Literal["pending_review"] = "pending_review"
    base: EventData
    proposed_changes: EventData


class UnpublishedReview(BaseModel):
    state: Literal["unpublished"] = "unpublished"
    status: Literal["pending", "rejected"]
    data: EventData
    rejection_reason: Optional[str] = None


ReviewState = Annotated[
    Union[PublishedReview, PendingReview, UnpublishedReview],
    Field(discriminator="state"),
]


class EventEditRead(BaseModel):
    edited_at: datetime
    edited_by_id: Optional[int] = None
    changes: str
    previous_status: str

    class Config:
        from_attributes = True


class EventBrief(BaseModel):
    id: int
    title: str
    date: datetime
    location: str
    status: str

    class Config:
        from_attributes = True


class EventRead(EventData):
    id: int
    organizer: UserSummary
    participants: List[UserSummary] = []
    status: str
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    submitted_for_review: bool = False
    is_edited: bool = False
    views: int = 0
    edit_history: List[EventEditRead] = []
    review: ReviewState
    created_at: Optional[datetime] = None


class JoinEventRequest(BaseModel):
    team_id: Optional[int] = None


class JoinEventResult(BaseModel):
    message: str
    event_id: int
    title: str
    participants: int


class ViewCount(BaseModel):
    message: str = "View tracked"
    views: int


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class TeamRequirementsSummary(BaseModel):
    team_requirements: TeamRequirements
    calculated_team_size: int
    girls_required: int
    boys_required: int
    max_participants: int
    is_valid: bool


class PrizePoolValidationRequest(BaseModel):
    total_amount: float = 0
    first_place: float = 0
    second_place: float = 0
    third_place: float = 0
    consolation_prizes: List[float] = []


class PrizePoolValidation(PrizePoolValidationRequest):
    calculated_total: float
    is_valid: bool
    errors: List[str]


class TeamRequirementsValidationRequest(BaseModel):
    girls_required: int = 0
    boys_required: int = 0
    max_participants: int = 0


class TeamRequirementsValidation(TeamRequirementsValidationRequest):
    calculated_team_size: int
    is_valid: bool
    errors: List[str]


class UserAnalytics(BaseModel):
    total_events: int
    total_participants: int
    total_views: int
    total_teams: int
    recent_activity: List[EventBrief]


class OrganizerAnalytics(BaseModel):
    total_events: int
    approved_events: int
    pending_events: int
    rejected_events: int
    total_participants: int
    total_views: int
    total_revenue: float
