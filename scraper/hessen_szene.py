"""Event scraper for the hessen-szene.de listing and detail pages."""
import logging
import re
import time
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from processor.exceptions import FetchError, ParseError
from processor.models import EventDetail, MergedEvent, RawEvent

logger = logging.getLogger(__name__)


class HessenSzeneScraper:
    """Scraper for the hessen-szene.de event table and event detail pages."""

    BASE_URL = 'https://www.hessen-szene.de'
    USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
    VENUE = 'trauma im g-werk'

    def __init__(
        self,
        listing_timeout: int = 30,
        request_timeout: int = 30,
        detail_delay: float = 1.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the scraper.

        Args:
            listing_timeout: Timeout for the listing page request in seconds
            request_timeout: Timeout for detail page requests in seconds
            detail_delay: Pause after each detail page request in seconds
            session: Optional requests session to reuse
        """
        self.listing_timeout = listing_timeout
        self.request_timeout = request_timeout
        self.detail_delay = detail_delay
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.USER_AGENT})

    def fetch_events(self, url: str) -> List[MergedEvent]:
        """
        Fetch the listing page and enrich every event with its detail page.

        Args:
            url: Listing page URL

        Returns:
            List of MergedEvent objects in listing order

        Raises:
            FetchError: If the listing page cannot be retrieved
        """
        raw_events = self.fetch_listing(url)

        logger.info('Loading event details...')
        events = []
        for index, raw in enumerate(raw_events, start=1):
            detail = None
            if raw.event_link:
                logger.info(
                    f"Scraping details for event {index}/{len(raw_events)}: {raw.event_name}"
                )
                try:
                    detail = self.fetch_details(raw.event_link)
                except FetchError as e:
                    logger.warning(f"Failed to load details for {raw.event_name}: {e}")
                time.sleep(self.detail_delay)
            else:
                logger.info(f"No detail link for {raw.event_name}, skipping details")

            events.append(MergedEvent.from_raw(raw, detail))

        return events

    def fetch_listing(self, url: str) -> List[RawEvent]:
        """
        Fetch and parse the event table of the listing page.

        Args:
            url: Listing page URL

        Returns:
            List of RawEvent objects in document order

        Raises:
            FetchError: If the request fails, times out or returns non-2xx
        """
        logger.info(f"Scraping events from: {url}")
        html_content = self._get(url, timeout=self.listing_timeout)
        events = self.parse_listing(html_content)
        logger.info(f"Found {len(events)} events")
        return events

    def fetch_details(self, detail_url: str) -> EventDetail:
        """
        Fetch and parse an event detail page.

        Args:
            detail_url: Absolute detail page URL

        Returns:
            EventDetail object; fields without a match are empty strings

        Raises:
            FetchError: If the request fails or returns non-2xx
        """
        logger.debug(f"Scraping details from: {detail_url}")
        html_content = self._get(detail_url, timeout=self.request_timeout)
        return self.parse_details(html_content)

    def parse_listing(self, html_content: str) -> List[RawEvent]:
        """
        Parse listing rows from the event table.

        Rows without an event name or date are skipped, as are rows that
        fail to parse.
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        scraped_at = datetime.now(timezone.utc).isoformat()
        events = []

        for index, row in enumerate(soup.select('table.table tbody tr')):
            try:
                event = self._parse_row(row, scraped_at)
            except (ParseError, AttributeError, IndexError) as e:
                logger.warning(f"Error parsing row {index}: {e}")
                continue

            if event.event_name and event.date:
                events.append(event)

        return events

    def parse_details(self, html_content: str) -> EventDetail:
        """Extract detail fields using the fixed detail page selectors."""
        soup = BeautifulSoup(html_content, 'html.parser')

        image = soup.select_one('.single-event-image img')
        location = soup.select_one('.event-single-view-contact .col:last-child p')
        contact_text = self._select_text(soup, '.event-single-view-contact p')
        hotline = re.search(r'Hotline: (\d+)', contact_text)
        category = self._select_text(soup, '.event-single-view-category')

        return EventDetail(
            title=self._select_text(soup, 'h1.pb-2'),
            full_date_time=self._select_text(soup, '.event-single-view-datetime strong'),
            start_time=self._select_text(soup, '.event-single-view-time p'),
            category=category.replace('Kategorie:', '').strip(),
            full_location=location.decode_contents() if location else '',
            image_url=image.get('src', '') if image else '',
            image_alt=image.get('alt', '') if image else '',
            description=self._select_text(soup, '.event-single-view-desc'),
            price=self._select_text(soup, '.event-single-view-fee p'),
            hotline=hotline.group(1) if hotline else ''
        )

    def _parse_row(self, row: Tag, scraped_at: str) -> RawEvent:
        cells = row.find_all('td')
        if len(cells) < 5:
            raise ParseError(f"expected 5 cells, found {len(cells)}")

        date_match = re.search(r'(\d{2}\.\d{2}\.\d{2})', cells[0].get_text())
        date = date_match.group(1) if date_match else ''

        anchor = cells[2].find('a')
        event_name = anchor.get_text(strip=True) if anchor else ''
        href = anchor.get('href', '') if anchor else ''
        event_id_match = re.search(r'eventDate%5D=(\d+)', href)

        return RawEvent(
            date=date,
            day_of_week=self._day_of_week(cells[0]),
            time=cells[1].get_text(strip=True),
            event_name=event_name,
            event_link=urljoin(self.BASE_URL, href) if href else '',
            event_id=event_id_match.group(1) if event_id_match else '',
            location=re.sub(r'\s+', ' ', cells[3].get_text()).strip(),
            category=cells[4].get_text(strip=True),
            venue=self.VENUE,
            scraped_at=scraped_at
        )

    def _day_of_week(self, cell: Tag) -> str:
        line_break = cell.find('br')
        if line_break is None:
            return ''

        # first non-blank node after the line break
        for sibling in line_break.next_siblings:
            if isinstance(sibling, Tag):
                return sibling.get_text(strip=True)
            if isinstance(sibling, NavigableString) and sibling.strip():
                return str(sibling).strip()
        return ''

    def _select_text(self, soup: BeautifulSoup, selector: str) -> str:
        return ''.join(el.get_text() for el in soup.select(selector)).strip()

    def _get(self, url: str, timeout: int) -> str:
        try:
            response = self.session.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            raise FetchError(
                f"Request to {url} failed: {e}",
                url=url,
                status_code=e.response.status_code if e.response is not None else None
            ) from e
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e

        return response.text
