"""HTTP client for the host and messaging APIs, with retries and pagination."""

import logging
from typing import Dict, List, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

DEFAULT_TIMEOUT = 30


class APIClient:
    """Handles JSON API requests with retry logic and pagination."""

    def __init__(self, base_url: str, headers: Dict[str, str] = None,
                 auth: Tuple[str, str] = None, timeout: int = DEFAULT_TIMEOUT):
        """Initialize the API client.

        Args:
            base_url: Root URL that relative paths are resolved against
            headers: Headers sent with every request (authorization, accept)
            auth: Optional basic auth credentials (username, password)
            timeout: Timeout of each request, in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

        adapter = HTTPAdapter(
            pool_connections=10,
            pool_maxsize=10,
            max_retries=Retry(
                total=3,
                backoff_factor=0.3,
                status_forcelist=[500, 502, 503, 504]
            )
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        if headers:
            self.session.headers.update(headers)
        if auth:
            self.session.auth = auth

    def url(self, path: str) -> str:
        if path.startswith('http://') or path.startswith('https://'):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _check(self, response: requests.Response) -> requests.Response:
        if response.status_code == 403:
            logging.error(f"Access denied or rate limit exceeded for {response.url}")
        response.raise_for_status()
        return response

    def get_json(self, path: str, params: Dict = None):
        """Make a single GET request and return the decoded JSON body.

        Raises:
            requests.exceptions.RequestException: On network errors or error statuses
        """
        url = self.url(path)
        logging.debug(f"GET {url}")
        response = self.session.get(url, params=params, timeout=self.timeout)
        return self._check(response).json()

    def post_json(self, path: str, payload: Dict):
        url = self.url(path)
        logging.debug(f"POST {url}")
        response = self.session.post(url, json=payload, timeout=self.timeout)
        return self._check(response).json()

    def get_paginated(self, path: str, params: Dict = None) -> List[Dict]:
        """Fetch all pages of an endpoint paginated with page numbers (GitHub style).

        Args:
            path: The API endpoint path or URL
            params: Query parameters

        Returns:
            List of all items from all pages
        """
        results = []
        page = 1
        per_page = 100

        params = dict(params or {})
        params['per_page'] = per_page

        while True:
            params['page'] = page
            data = self.get_json(path, params)

            if not data:
                break

            results.extend(data)

            if len(data) < per_page:
                break

            page += 1

        logging.debug(f"Fetched {len(results)} total items from {path}")
        return results

    def get_paginated_values(self, path: str, params: Dict = None) -> List[Dict]:
        """Fetch all pages of an endpoint that links to its next page (Bitbucket style).

        Each page is an object holding its items under 'values' and the URL
        of the following page under 'next'.

        Returns:
            List of all items from all pages
        """
        results = []
        data = self.get_json(path, params)
        while True:
            results.extend(data.get('values', []))
            next_url = data.get('next')
            if not next_url:
                break
            data = self.get_json(next_url)

        logging.debug(f"Fetched {len(results)} total items from {path}")
        return results
