"""Data models for event scraping and Webflow sync."""
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RawEvent:
    """Event row from the hessen-szene listing table."""
    date: str
    day_of_week: str
    time: str
    event_name: str
    event_link: str
    event_id: str
    location: str
    category: str
    venue: str
    scraped_at: str


@dataclass(frozen=True)
class EventDetail:
    """Supplementary fields from an event detail page."""
    title: str = ''
    full_date_time: str = ''
    start_time: str = ''
    category: str = ''
    full_location: str = ''
    image_url: str = ''
    image_alt: str = ''
    description: str = ''
    price: str = ''
    hotline: str = ''


@dataclass
class MergedEvent:
    """Listing row overlaid with its detail page fields."""
    date: str
    day_of_week: str
    time: str
    event_name: str
    event_link: str
    event_id: str
    location: str
    category: str
    venue: str
    scraped_at: str
    title: str = ''
    full_date_time: str = ''
    start_time: str = ''
    full_location: str = ''
    image_url: str = ''
    image_alt: str = ''
    description: str = ''
    price: str = ''
    hotline: str = ''

    @classmethod
    def from_raw(cls, raw: RawEvent, detail: Optional[EventDetail] = None) -> 'MergedEvent':
        """
        Merge a listing row with its detail fields.

        Detail values win wherever they are non-empty; an empty detail
        value never clears a listing value.

        Args:
            raw: Event row from the listing page
            detail: Fields from the detail page, if it could be fetched

        Returns:
            MergedEvent object
        """
        values = asdict(raw)
        if detail is not None:
            for key, value in asdict(detail).items():
                if value:
                    values[key] = value
        return cls(**values)

    @property
    def display_name(self) -> str:
        return self.title or self.event_name


@dataclass
class RemoteItem:
    """Item returned by the Webflow collection API."""
    id: str
    field_data: Dict[str, Any]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'RemoteItem':
        return cls(
            id=data.get('id', ''),
            field_data=data.get('fieldData') or {},
            raw=data
        )

    @property
    def name(self) -> str:
        return (self.field_data.get('name') or '').strip()


@dataclass
class ItemPage:
    """One page of collection items plus pagination metadata."""
    items: List[RemoteItem]
    total: Optional[int]
    limit: Optional[int]
    offset: Optional[int]


@dataclass
class EventOutcome:
    """Result of syncing a single event."""
    name: str
    action: str
    item_id: Optional[str] = None
    published: Optional[bool] = None
    error: Optional[str] = None


@dataclass
class SyncReport:
    """Summary of a sync run."""
    created: int = 0
    updated: int = 0
    failed: int = 0
    total: int = 0
    events: List[EventOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, outcome: EventOutcome) -> None:
        self.events.append(outcome)
        if outcome.action == 'created':
            self.created += 1
        elif outcome.action == 'updated':
            self.updated += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'created': self.created,
            'updated': self.updated,
            'failed': self.failed,
            'total': self.total,
            'duration_seconds': round(self.duration_seconds, 2),
            'events': [
                {f.name: getattr(outcome, f.name) for f in fields(outcome)}
                for outcome in self.events
            ]
        }
