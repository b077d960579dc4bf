"""Field mapping from scraped events to Webflow collection payloads."""
import logging
import re
from typing import Any, Dict, Optional

from processor.models import MergedEvent

logger = logging.getLogger(__name__)

SITE_ORIGIN = 'https://www.hessen-szene.de'
FREE_ADMISSION = 'Eintritt frei'

GERMAN_MONTHS = {
    'Januar': '01', 'Februar': '02', 'März': '03', 'April': '04',
    'Mai': '05', 'Juni': '06', 'Juli': '07', 'August': '08',
    'September': '09', 'Oktober': '10', 'November': '11', 'Dezember': '12'
}

_DATE_PATTERN = re.compile(r'(\d{1,2})\.\s*(\w+)\s*(\d{4})')
_TIME_PATTERN = re.compile(r'(\d{1,2}):(\d{2})')
_LISTING_DATE_PATTERN = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{2})$')


def slugify(name: str) -> str:
    """
    Derive a Webflow slug from a display name.

    Args:
        name: Display name (e.g., "Konzert: Die Ärzte 2025")

    Returns:
        Lower-case slug of [a-z0-9] runs joined by single hyphens
    """
    slug = name.lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


def format_date_for_webflow(full_date_time: str, date: str) -> Optional[str]:
    """
    Normalize an event date to the ISO format Webflow date fields expect.

    The detail page date ("Dienstag, 28. Oktober 2025, 18:30 Uhr") is
    preferred; the listing date ("28.10.25") is the fallback at midnight.

    Args:
        full_date_time: Localized date/time text from the detail page
        date: Listing date in DD.MM.YY form

    Returns:
        "YYYY-MM-DDTHH:MM:00.000Z" string or None if neither value parses
    """
    if full_date_time:
        clean = re.sub(r'\s+', ' ', full_date_time).strip()
        date_match = _DATE_PATTERN.search(clean)
        time_match = _TIME_PATTERN.search(clean)

        if date_match and time_match:
            day, month_name, year = date_match.groups()
            hour, minute = time_match.groups()
            month = GERMAN_MONTHS.get(month_name)
            if month:
                return f"{year}-{month}-{day.zfill(2)}T{hour.zfill(2)}:{minute}:00.000Z"

        logger.debug(f"Could not parse date: {clean}")

    if date:
        match = _LISTING_DATE_PATTERN.match(date.strip())
        if match:
            day, month, year = match.groups()
            return f"20{year}-{month.zfill(2)}-{day.zfill(2)}T00:00:00.000Z"

    return None


def resolve_price(price: str) -> str:
    """Return the scraped price text, or the free admission text if none was found."""
    return price or FREE_ADMISSION


def is_free_admission(price: str) -> bool:
    """Return True if the resolved price text mentions free admission."""
    return 'frei' in resolve_price(price).lower()


def build_description(event: MergedEvent) -> str:
    """Return the scraped description or a summary built from the listing fields."""
    if event.description:
        return event.description

    return (
        f"{event.display_name}\n\n"
        f"Datum: {event.date}\n"
        f"Zeit: {event.time}\n"
        f"Ort: {event.location}\n"
        f"Kategorie: {event.category}"
    )


def format_image_url(image_url: str) -> str:
    """
    Convert a relative image path to an absolute URL on the source site.

    Args:
        image_url: Image src attribute as scraped

    Returns:
        Absolute URL, or empty string if no image was found
    """
    if not image_url:
        return ''

    if image_url.startswith(('http://', 'https://')):
        return image_url

    if image_url.startswith('/'):
        return f"{SITE_ORIGIN}{image_url}"

    return f"{SITE_ORIGIN}/{image_url}"


def build_payload(
    event: MergedEvent,
    image_asset_id: Optional[str] = None,
    image_field: str = 'main-image'
) -> Dict[str, Any]:
    """
    Build the Webflow field data for an event.

    Args:
        event: Merged listing and detail fields
        image_asset_id: Uploaded asset ID to reference, if any
        image_field: Field slug of the collection's image field

    Returns:
        Dictionary mapping field slugs to values
    """
    name = event.display_name

    payload = {
        'name': name,
        'slug': slugify(name),
        'uhrzeit': event.time,
        'event-datum': format_date_for_webflow(event.full_date_time, event.date),
        'preis': resolve_price(event.price),
        'eintritt-frei': is_free_admission(event.price),
        'blog-rich-text': build_description(event),
        'imageurl': format_image_url(event.image_url),
        'kategorie': event.category or '',
        'tag': event.day_of_week or ''
    }

    if image_asset_id:
        payload[image_field] = {'fileId': image_asset_id, 'alt': event.image_alt}

    return payload
