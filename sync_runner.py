"""Sync scraped hessen-szene events into a Webflow collection."""
import logging
import posixpath
import time
from typing import Callable, List, Optional
from urllib.parse import urlparse

from processor.config import SyncOptions, validate_source_url
from processor.exceptions import FetchError, RemoteAPIError
from processor.field_mapper import build_payload, format_image_url, slugify
from processor.models import EventOutcome, MergedEvent, SyncReport
from scraper.hessen_szene import HessenSzeneScraper
from storage.webflow_client import WebflowClient

logger = logging.getLogger(__name__)


class EventSynchronizer:
    """Creates or updates one Webflow item per scraped event."""

    def __init__(
        self,
        client: WebflowClient,
        options: SyncOptions,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client
        self.options = options
        self.sleep = sleep

    def sync_events(self, events: List[MergedEvent]) -> SyncReport:
        """
        Synchronize events with the collection, one at a time.

        A failing event is recorded in the report and does not stop the
        remaining events. The configured delay follows every event.

        Args:
            events: Scraped events in listing order

        Returns:
            SyncReport with created/updated/failed counts and per-event outcomes
        """
        logger.info(f"Starting sync process with {len(events)} events")
        report = SyncReport(total=len(events))

        for event in events:
            name = event.display_name
            try:
                outcome = self.sync_event(event)
            except Exception as e:
                logger.error(f"Error processing event {name}: {e}", exc_info=True)
                outcome = EventOutcome(name=name, action='failed', error=str(e))

            report.record(outcome)
            self.sleep(self.options.delay_seconds)

        logger.info(
            f"Sync complete: {report.created} created, {report.updated} updated, "
            f"{report.failed} failed"
        )
        return report

    def sync_event(self, event: MergedEvent) -> EventOutcome:
        name = event.display_name
        collection_id = self.options.collection_id

        existing = self.client.find_item_by_name(collection_id, name)
        asset_id = self._upload_image(event)
        payload = build_payload(event, asset_id, image_field=self.options.image_field)

        if existing is not None:
            logger.info(f"Updating: {name}...")
            self.client.update_item(collection_id, existing.id, payload)
            return EventOutcome(name=name, action='updated', item_id=existing.id)

        logger.info(f"Creating: {name}...")
        item = self.client.create_item(collection_id, payload)
        outcome = EventOutcome(name=name, action='created', item_id=item.id)

        if self.options.auto_publish:
            outcome.published = self._publish(item.id, name)

        return outcome

    def _publish(self, item_id: str, name: str) -> bool:
        try:
            self.client.publish_item(self.options.collection_id, item_id)
        except RemoteAPIError as e:
            logger.error(f"Failed to publish {name}: {e}")
            logger.warning(f"Event {name} uploaded but not published")
            return False

        logger.info(f"Published: {name}")
        return True

    def _upload_image(self, event: MergedEvent) -> Optional[str]:
        if not (self.options.upload_images and event.image_url):
            return None

        image_url = format_image_url(event.image_url)
        filename = posixpath.basename(urlparse(image_url).path) or f"{slugify(event.display_name)}.jpg"

        try:
            return self.client.upload_image(image_url, filename)
        except (FetchError, RemoteAPIError) as e:
            logger.warning(f"Continuing without image for {event.display_name}: {e}")
            return None


def run_sync(
    source_url: str,
    options: SyncOptions,
    *,
    scraper: Optional[HessenSzeneScraper] = None,
    client: Optional[WebflowClient] = None,
    sleep: Callable[[float], None] = time.sleep
) -> SyncReport:
    """
    Scrape the listing page and sync every event into the Webflow collection.

    Args:
        source_url: Listing page URL
        options: Credentials and tuning options
        scraper: Scraper to use (built from options if omitted)
        client: Webflow client to use (built from options if omitted)
        sleep: Delay function between events

    Returns:
        SyncReport for the run

    Raises:
        ConfigError: If the URL or options are invalid, before any request
        FetchError: If the listing page cannot be retrieved
    """
    validate_source_url(source_url)
    options.validate()

    start_time = time.time()

    if scraper is None:
        scraper = HessenSzeneScraper(
            listing_timeout=options.listing_timeout,
            request_timeout=options.request_timeout,
            detail_delay=options.detail_delay
        )
    if client is None:
        client = WebflowClient(
            options.api_token,
            site_id=options.site_id,
            timeout=options.request_timeout
        )

    logger.info('Starting scraping process...')
    events = scraper.fetch_events(source_url)
    logger.info(f"Scraped {len(events)} events from {source_url}")

    report = EventSynchronizer(client, options, sleep=sleep).sync_events(events)
    report.duration_seconds = time.time() - start_time
    return report
