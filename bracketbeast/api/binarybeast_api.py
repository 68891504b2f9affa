"""HTTP transport for the BinaryBeast API."""

import json
from typing import Any, Mapping

import requests
from pydantic import ValidationError

from ..models.response import APIResponse
from ..utils.helpers import RESULT_TRANSPORT_ERROR
from ..utils.logging import log


class BinaryBeastAPI:
    """Call BinaryBeast services over HTTP"""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str = "https://binarybeast.com/api",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.api_key: str | None = api_key
        self.api_url: str = api_url
        self.timeout: float = timeout
        self.session: requests.Session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": "Mozilla/5.0 (compatible; BracketBeast/1.0)"}
        )

    def invoke(self, service: str, args: Mapping[str, Any]) -> APIResponse:
        """Call a service, e.g. ``Tourney.TourneyLoad.Info``.

        Never raises: connection problems, HTTP errors and unreadable bodies
        come back as a response with ``RESULT_TRANSPORT_ERROR``.
        """
        form = {
            "api_key": self.api_key or "",
            "api_service": service,
            "api_return": "json",
        }
        for key, value in args.items():
            if value is None:
                continue
            # Nested values are sent JSON encoded
            form[key] = json.dumps(value) if isinstance(value, (dict, list)) else value

        log(f"📡 {service} {sorted(args)}")

        try:
            response = self.session.post(self.api_url, data=form, timeout=self.timeout)
        except requests.RequestException as e:
            log(f"❌ API Error: {type(e).__name__}: {e}")
            return APIResponse(result=RESULT_TRANSPORT_ERROR, error=str(e))

        if response.status_code != 200:
            log(f"❌ HTTP Error {response.status_code}: {response.text[:200]}")
            return APIResponse(
                result=RESULT_TRANSPORT_ERROR, error=f"HTTP {response.status_code}"
            )

        try:
            raw_data = response.json()
        except ValueError as e:
            log(f"❌ Invalid JSON from {service}: {e}")
            return APIResponse(result=RESULT_TRANSPORT_ERROR, error="Invalid JSON response")

        if not isinstance(raw_data, dict):
            log(f"❌ Unexpected response type from {service}: {type(raw_data).__name__}")
            return APIResponse(result=RESULT_TRANSPORT_ERROR, error="Unexpected response")

        try:
            api_response = APIResponse(**raw_data)
        except ValidationError as e:
            log(f"❌ Pydantic validation error: {e}")
            return APIResponse(result=RESULT_TRANSPORT_ERROR, error=str(e))

        log(f"✅ {service}: {api_response.result} ({api_response.result_friendly})")
        return api_response
