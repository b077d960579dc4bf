"""Webflow CMS client for collection item and asset operations."""
import base64
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from processor.exceptions import ImageDownloadError, RemoteAPIError
from processor.models import ItemPage, RemoteItem

logger = logging.getLogger(__name__)

# (label, call) pairs tried in order by _attempt
Strategy = Tuple[str, Callable[[], Any]]


class WebflowClient:
    """Client for the Webflow v2 collection API."""

    BASE_URL = 'https://api.webflow.com/v2'
    LEGACY_BASE_URL = 'https://api.webflow.com/v1'
    PAGE_SIZE = 100
    USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'

    def __init__(
        self,
        api_token: str,
        site_id: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Webflow client.

        Args:
            api_token: Webflow API bearer token
            site_id: Site ID, required when using a site API token
            timeout: Timeout for every request in seconds
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            'Authorization': f"Bearer {api_token}",
            'Content-Type': 'application/json'
        }
        if site_id:
            self.headers['X-Webflow-Site'] = site_id

    def create_item(self, collection_id: str, field_data: Dict[str, Any]) -> RemoteItem:
        """
        Create an item in a collection.

        Args:
            collection_id: Webflow collection ID
            field_data: Field slug to value mapping

        Returns:
            Created RemoteItem

        Raises:
            RemoteAPIError: If Webflow rejects the request
        """
        data = self._request(
            'POST',
            f"{self.BASE_URL}/collections/{collection_id}/items",
            json={'items': [{'fieldData': field_data}]}
        )
        item = RemoteItem.from_response(self._first_item(data))
        logger.info(f"Item created in Webflow CMS: {item.id}")
        return item

    def get_item(self, collection_id: str, item_id: str) -> RemoteItem:
        data = self._request(
            'GET', f"{self.BASE_URL}/collections/{collection_id}/items/{item_id}"
        )
        return RemoteItem.from_response(self._first_item(data))

    def update_item(
        self,
        collection_id: str,
        item_id: str,
        field_data: Dict[str, Any]
    ) -> RemoteItem:
        """
        Update an item, keeping existing fields the payload does not set.

        The existing item is fetched first and the payload is merged over
        its field data. If Webflow rejects the plain update body with a
        client error, the items-array body is tried before giving up.

        Args:
            collection_id: Webflow collection ID
            item_id: ID of the item to update
            field_data: Field slug to value mapping

        Returns:
            Updated RemoteItem

        Raises:
            RemoteAPIError: The first error if every request shape fails
        """
        existing = self.get_item(collection_id, item_id)
        merged = {**existing.field_data, **field_data}
        url = f"{self.BASE_URL}/collections/{collection_id}/items/{item_id}"

        strategies = [
            ('fieldData body',
             lambda: self._request('PATCH', url, json={'fieldData': merged})),
            ('items array body',
             lambda: self._request(
                 'PATCH', url, json={'items': [{'id': item_id, 'fieldData': merged}]}
             ))
        ]
        data = self._attempt(
            f"update item {item_id}",
            strategies,
            fallback_on=lambda error: error.is_client_error
        )

        item = RemoteItem.from_response(self._first_item(data))
        logger.info(f"Item updated in Webflow CMS: {item_id}")
        return item

    def get_items(self, collection_id: str, limit: int = PAGE_SIZE, offset: int = 0) -> ItemPage:
        """
        Get one page of items from a collection.

        Args:
            collection_id: Webflow collection ID
            limit: Page size
            offset: Number of items to skip

        Returns:
            ItemPage with items and pagination info
        """
        data = self._request(
            'GET',
            f"{self.BASE_URL}/collections/{collection_id}/items",
            params={'limit': limit, 'offset': offset}
        )
        pagination = data.get('pagination') or {}

        return ItemPage(
            items=[RemoteItem.from_response(item) for item in data.get('items') or []],
            total=pagination.get('total'),
            limit=pagination.get('limit'),
            offset=pagination.get('offset')
        )

    def find_item_by_name(self, collection_id: str, name: str) -> Optional[RemoteItem]:
        """
        Find an item whose name field matches exactly (ignoring outer whitespace).

        Errors are logged and reported as not found.

        Args:
            collection_id: Webflow collection ID
            name: Display name to look for

        Returns:
            Matching RemoteItem or None
        """
        wanted = name.strip()
        offset = 0
        limit = self.PAGE_SIZE

        try:
            while True:
                page = self.get_items(collection_id, limit=limit, offset=offset)

                for item in page.items:
                    if item.name == wanted:
                        return item

                if not page.items:
                    return None

                if page.total is not None and offset + limit >= page.total:
                    return None

                offset += limit

        except (RemoteAPIError, AttributeError, TypeError) as e:
            logger.error(
                f"Error finding item in Webflow: {e}",
                extra={'body': getattr(e, 'body', None)}
            )
            return None

    def upload_image(self, image_url: str, filename: str) -> str:
        """
        Download an image and upload it to Webflow as an asset.

        Args:
            image_url: Absolute URL of the image
            filename: Asset file name

        Returns:
            Webflow asset ID

        Raises:
            ImageDownloadError: If the image cannot be downloaded
            RemoteAPIError: If Webflow rejects the upload
        """
        try:
            response = self.session.get(
                image_url,
                headers={'User-Agent': self.USER_AGENT},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            status_code = getattr(getattr(e, 'response', None), 'status_code', None)
            raise ImageDownloadError(
                f"Failed to download image {image_url}: {e}",
                url=image_url,
                status_code=status_code
            ) from e

        data = self._request(
            'POST',
            f"{self.BASE_URL}/assets",
            json={
                'fileName': filename,
                'fileData': base64.b64encode(response.content).decode('ascii'),
                'mimeType': response.headers.get('Content-Type') or 'image/jpeg'
            }
        )
        logger.info(f"Image uploaded to Webflow: {filename}")
        return data.get('id')

    def publish_item(self, collection_id: str, item_id: str) -> Dict[str, Any]:
        """
        Publish an item, retrying once against the v1 API.

        Raises:
            RemoteAPIError: The v2 error if both API versions fail
        """
        path = f"/collections/{collection_id}/items/{item_id}/publish"
        strategies = [
            ('v2 API', lambda: self._request('POST', f"{self.BASE_URL}{path}", json={})),
            ('v1 API', lambda: self._request('POST', f"{self.LEGACY_BASE_URL}{path}", json={}))
        ]
        return self._attempt(f"publish item {item_id}", strategies)

    def get_collection_schema(self, collection_id: str) -> Dict[str, Any]:
        """Get the collection definition including its field list."""
        return self._request('GET', f"{self.BASE_URL}/collections/{collection_id}")

    def _attempt(
        self,
        description: str,
        strategies: List[Strategy],
        fallback_on: Optional[Callable[[RemoteAPIError], bool]] = None
    ) -> Any:
        """
        Try request strategies in order until one succeeds.

        Args:
            description: What is being attempted, for log messages
            strategies: Ordered (label, call) pairs
            fallback_on: Predicate deciding whether an error allows the next
                strategy; every error does if omitted

        Raises:
            RemoteAPIError: The error of the first strategy
        """
        first_error = None

        for index, (label, call) in enumerate(strategies):
            try:
                return call()
            except RemoteAPIError as e:
                if first_error is None:
                    first_error = e
                logger.warning(f"Failed to {description} using {label}: {e}")

                has_next = index + 1 < len(strategies)
                if not has_next or (fallback_on is not None and not fallback_on(e)):
                    break
                logger.info(f"Trying {strategies[index + 1][0]} to {description}...")

        raise first_error

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method, url, headers=self.headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise RemoteAPIError(f"{method} {url} failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise RemoteAPIError(
                f"{method} {url} was rejected",
                status_code=response.status_code,
                body=body
            )

        if not response.content:
            return {}

        try:
            data = response.json()
        except ValueError:
            raise RemoteAPIError(
                f"{method} {url} returned a non-JSON body",
                status_code=response.status_code,
                body=response.text
            ) from None

        if not isinstance(data, dict):
            raise RemoteAPIError(
                f"{method} {url} returned an unexpected body",
                status_code=response.status_code,
                body=data
            )
        return data

    @staticmethod
    def _first_item(data: Dict[str, Any]) -> Dict[str, Any]:
        items = data.get('items')
        return items[0] if items else data
