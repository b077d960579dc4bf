"""Tests for the event sync orchestration."""
from unittest.mock import Mock

import pytest
import responses

from processor.config import SyncOptions
from processor.exceptions import ConfigError, FetchError, ImageDownloadError, RemoteAPIError
from processor.models import EventDetail, MergedEvent, RawEvent, RemoteItem
from storage.webflow_client import WebflowClient
from sync_runner import EventSynchronizer, run_sync

SOURCE_URL = "https://www.hessen-szene.de/"


class FakeWebflowClient:
    """In-memory stand-in for WebflowClient."""

    def __init__(self):
        self.items = {}
        self.calls = []
        self.reject_names = set()
        self.publish_error = None
        self.upload_error = None

    def find_item_by_name(self, collection_id, name):
        self.calls.append(('find', name))
        for item in self.items.values():
            if item.name == name.strip():
                return item
        return None

    def create_item(self, collection_id, field_data):
        self.calls.append(('create', field_data['name']))
        if field_data['name'] in self.reject_names:
            raise RemoteAPIError("rejected", status_code=400, body={'message': 'invalid'})
        item = RemoteItem(id=f"item-{len(self.items) + 1}", field_data=dict(field_data))
        self.items[item.id] = item
        return item

    def update_item(self, collection_id, item_id, field_data):
        self.calls.append(('update', field_data['name']))
        item = self.items[item_id]
        item.field_data = {**item.field_data, **field_data}
        return item

    def publish_item(self, collection_id, item_id):
        self.calls.append(('publish', item_id))
        if self.publish_error:
            raise self.publish_error
        return {}

    def upload_image(self, image_url, filename):
        self.calls.append(('upload', image_url, filename))
        if self.upload_error:
            raise self.upload_error
        return 'asset-1'


def make_event(name, date="28.10.25", **detail):
    raw = RawEvent(
        date=date,
        day_of_week="Dienstag",
        time="20:00",
        event_name=name,
        event_link="",
        event_id="",
        location="Frankfurt",
        category="Konzert",
        venue="trauma im g-werk",
        scraped_at="2025-10-20T08:00:00+00:00"
    )
    return MergedEvent.from_raw(raw, EventDetail(**detail) if detail else None)


@pytest.fixture
def options():
    return SyncOptions(collection_id='col-1', api_token='token', site_id='site-1')


@pytest.fixture
def client():
    return FakeWebflowClient()


@pytest.fixture
def delays():
    return []


def make_scraper(events):
    scraper = Mock()
    scraper.fetch_events.return_value = events
    return scraper


class TestRunSync:
    """Test cases for run_sync."""

    def test_creates_new_events(self, options, client, delays):
        events = [make_event("Jazz im Hof"), make_event("Lesung")]

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper(events), client=client, sleep=delays.append
        )

        assert (report.created, report.updated, report.failed, report.total) == (2, 0, 0, 2)
        assert [e.action for e in report.events] == ['created', 'created']
        assert report.events[0].item_id == 'item-1'
        assert report.events[0].published is None
        assert delays == [1.0, 1.0]
        assert ('publish', 'item-1') not in client.calls

    def test_second_run_updates_instead_of_duplicating(self, options, client, delays):
        """Test that an unchanged source synced twice yields one create and one update."""
        scraper = make_scraper([make_event("Jazz im Hof")])

        first = run_sync(SOURCE_URL, options, scraper=scraper, client=client, sleep=delays.append)
        second = run_sync(SOURCE_URL, options, scraper=scraper, client=client, sleep=delays.append)

        assert (first.created, first.updated) == (1, 0)
        assert (second.created, second.updated) == (0, 1)
        assert len(client.items) == 1
        assert second.events[0].item_id == first.events[0].item_id

    def test_failed_event_does_not_stop_the_run(self, options, client, delays):
        """Test that a rejected create is recorded and the next events still sync."""
        client.reject_names = {"Kaputt"}
        events = [make_event("Erstes"), make_event("Kaputt"), make_event("Drittes")]

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper(events), client=client, sleep=delays.append
        )

        assert (report.created, report.failed, report.total) == (2, 1, 3)
        failed = report.events[1]
        assert failed.name == "Kaputt"
        assert failed.action == 'failed'
        assert "rejected" in failed.error
        assert ('create', "Drittes") in client.calls
        assert len(delays) == 3

    def test_detail_title_is_the_display_name(self, options, client, delays):
        events = [make_event("Jazz im Hof", title="Jazz im Hof: Quartett")]

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper(events), client=client, sleep=delays.append
        )

        assert report.events[0].name == "Jazz im Hof: Quartett"
        assert client.items['item-1'].field_data['slug'] == "jazz-im-hof-quartett"

    def test_auto_publish(self, options, client, delays):
        options.auto_publish = True

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper([make_event("Jazz im Hof")]), client=client, sleep=delays.append
        )

        assert report.events[0].published is True
        assert ('publish', 'item-1') in client.calls

    def test_publish_failure_keeps_event_created(self, options, client, delays):
        """Test that a publish error is logged but the event still counts as created."""
        options.auto_publish = True
        client.publish_error = RemoteAPIError("publish failed", status_code=500)

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper([make_event("Jazz im Hof")]), client=client, sleep=delays.append
        )

        assert report.created == 1
        assert report.failed == 0
        assert report.events[0].published is False

    def test_updated_items_are_not_published(self, options, client, delays):
        options.auto_publish = True
        client.items['item-7'] = RemoteItem(id='item-7', field_data={'name': "Jazz im Hof"})

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper([make_event("Jazz im Hof")]), client=client, sleep=delays.append
        )

        assert report.events[0].action == 'updated'
        assert report.events[0].item_id == 'item-7'
        assert not [c for c in client.calls if c[0] == 'publish']

    def test_image_upload(self, options, client, delays):
        options.upload_images = True
        events = [make_event("Jazz im Hof", image_url="/fileadmin/jazz.jpg", image_alt="Band")]

        run_sync(SOURCE_URL, options, scraper=make_scraper(events), client=client, sleep=delays.append)

        assert ('upload', "https://www.hessen-szene.de/fileadmin/jazz.jpg", "jazz.jpg") in client.calls
        assert client.items['item-1'].field_data['main-image'] == {'fileId': 'asset-1', 'alt': "Band"}

    def test_image_upload_failure_continues_without_image(self, options, client, delays):
        options.upload_images = True
        client.upload_error = ImageDownloadError("404", url="https://www.hessen-szene.de/x.jpg", status_code=404)
        events = [make_event("Jazz im Hof", image_url="x.jpg")]

        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper(events), client=client, sleep=delays.append
        )

        assert report.created == 1
        assert 'main-image' not in client.items['item-1'].field_data
        assert client.items['item-1'].field_data['imageurl'] == "https://www.hessen-szene.de/x.jpg"

    def test_images_not_uploaded_by_default(self, options, client, delays):
        events = [make_event("Jazz im Hof", image_url="/fileadmin/jazz.jpg")]

        run_sync(SOURCE_URL, options, scraper=make_scraper(events), client=client, sleep=delays.append)

        assert not [c for c in client.calls if c[0] == 'upload']

    def test_missing_credentials_fail_before_scraping(self, client):
        """Test that invalid options raise ConfigError before any request."""
        scraper = make_scraper([make_event("Jazz im Hof")])
        options = SyncOptions(collection_id='col-1', api_token='', site_id='')

        with pytest.raises(ConfigError) as exc_info:
            run_sync(SOURCE_URL, options, scraper=scraper, client=client)

        assert "api_token" in str(exc_info.value)
        assert "site_id" in str(exc_info.value)
        scraper.fetch_events.assert_not_called()
        assert client.calls == []

    def test_invalid_source_url(self, options, client):
        scraper = make_scraper([])

        with pytest.raises(ConfigError):
            run_sync("not a url", options, scraper=scraper, client=client)

        scraper.fetch_events.assert_not_called()

    def test_listing_fetch_error_propagates(self, options, client):
        scraper = Mock()
        scraper.fetch_events.side_effect = FetchError("down", url=SOURCE_URL, status_code=503)

        with pytest.raises(FetchError):
            run_sync(SOURCE_URL, options, scraper=scraper, client=client)

        assert client.calls == []

    def test_report_to_dict(self, options, client, delays):
        report = run_sync(
            SOURCE_URL, options,
            scraper=make_scraper([make_event("Jazz im Hof")]), client=client, sleep=delays.append
        )

        data = report.to_dict()
        assert data['created'] == 1
        assert data['total'] == 1
        assert data['events'] == [{
            'name': "Jazz im Hof",
            'action': 'created',
            'item_id': 'item-1',
            'published': None,
            'error': None
        }]


class TestEventSynchronizer:

    def test_unexpected_error_is_recorded(self, options, delays):
        client = Mock()
        client.find_item_by_name.side_effect = KeyError('fieldData')

        report = EventSynchronizer(client, options, sleep=delays.append).sync_events(
            [make_event("Jazz im Hof")]
        )

        assert report.failed == 1
        assert report.events[0].action == 'failed'
        assert delays == [1.0]


class TestEventSynchronizerWithWebflowClient:
    """Orchestration against WebflowClient with mocked HTTP responses."""

    ITEMS_URL = "https://api.webflow.com/v2/collections/col-1/items"

    @pytest.fixture
    def webflow(self):
        return WebflowClient('token', site_id='site-1', timeout=5)

    def _empty_collection(self):
        responses.add(
            responses.GET,
            self.ITEMS_URL,
            json={'items': [], 'pagination': {'total': 0, 'limit': 100, 'offset': 0}}
        )
        responses.add(
            responses.POST,
            self.ITEMS_URL,
            json={'items': [{'id': 'i1', 'fieldData': {'name': "Jazz im Hof"}}]},
            status=200
        )

    @responses.activate
    def test_unreadable_publish_response_keeps_event_created(self, options, webflow, delays):
        """Test that a publish call answered without JSON is a publish failure only."""
        options.auto_publish = True
        self._empty_collection()
        responses.add(responses.POST, f"{self.ITEMS_URL}/i1/publish", body="OK", status=200)
        responses.add(
            responses.POST,
            "https://api.webflow.com/v1/collections/col-1/items/i1/publish",
            body="OK",
            status=200
        )

        report = EventSynchronizer(webflow, options, sleep=delays.append).sync_events(
            [make_event("Jazz im Hof")]
        )

        assert (report.created, report.failed) == (1, 0)
        assert report.events[0].action == 'created'
        assert report.events[0].item_id == 'i1'
        assert report.events[0].published is False

    @responses.activate
    def test_unreadable_asset_response_continues_without_image(self, options, webflow, delays):
        """Test that an asset upload answered without JSON leaves the event without an image."""
        options.upload_images = True
        self._empty_collection()
        responses.add(
            responses.GET,
            "https://www.hessen-szene.de/fileadmin/jazz.jpg",
            body=b'jpg',
            content_type='image/jpeg'
        )
        responses.add(
            responses.POST,
            "https://api.webflow.com/v2/assets",
            body="uploaded",
            status=200
        )

        report = EventSynchronizer(webflow, options, sleep=delays.append).sync_events(
            [make_event("Jazz im Hof", image_url="/fileadmin/jazz.jpg")]
        )

        assert (report.created, report.failed) == (1, 0)
        create_body = [
            call.request.body for call in responses.calls
            if call.request.method == 'POST' and call.request.url == self.ITEMS_URL
        ][0]
        assert b'main-image' not in create_body
