"""Client for the WaniKani v2 REST API."""
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

import requests

from wk_tutor.errors import (
    DecodingError, NoConnectionError, RateLimitedError, ServerError,
    UnauthorizedError, UnknownNetworkError,
)
from wk_tutor.models import (
    Assignment, LevelProgression, Review, ReviewStatistic, Subject, Summary, User,
)
from wk_tutor.resources import (
    format_datetime, parse_assignment, parse_level_progression, parse_review,
    parse_review_statistic, parse_subject, parse_summary, parse_user,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.wanikani.com/v2"
DEFAULT_REVISION = "20170710"
DEFAULT_RETRY_AFTER = 60

T = TypeVar("T")


def _join(values: Iterable) -> str:
    return ",".join(str(v) for v in values)


class WaniKaniAPI:
    """Thin wrapper over the endpoints the tutor needs.

    Every method raises a ``NetworkError`` subclass on failure; callers never
    see ``requests`` exceptions.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        revision: str = DEFAULT_REVISION,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Wanikani-Revision": revision,
        })

    @classmethod
    def from_settings(cls, settings) -> "WaniKaniAPI":
        return cls(
            api_token=settings.api_token,
            base_url=settings.base_url,
            revision=settings.api_revision,
            timeout=settings.request_timeout,
        )

    def _request(self, method: str, url: str, params: Optional[dict] = None, body: Optional[dict] = None) -> dict:
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(method, url, params=params, json=body, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error("Request to %s failed: %s", url, e)
            raise NoConnectionError() from e
        except requests.exceptions.RequestException as e:
            logger.error("Request to %s failed: %s", url, e)
            raise UnknownNetworkError(message=str(e)) from e

        status = response.status_code
        logger.debug("%s %s -> %s", method, url, status)
        if 200 <= status < 300:
            try:
                return response.json()
            except ValueError as e:
                raise DecodingError(f"Response from {url} is not JSON") from e
        if status == 401:
            raise UnauthorizedError()
        if status == 429:
            try:
                retry_after = int(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
            except (TypeError, ValueError):
                retry_after = DEFAULT_RETRY_AFTER
            raise RateLimitedError(retry_after)
        if 500 <= status < 600:
            raise ServerError(status)
        raise UnknownNetworkError(status)

    def _collect(self, path: str, params: dict, parse: Callable[[dict], T]) -> list[T]:
        """Fetch every page of a collection, following pages.next_url."""
        results = []
        url, page_params = path, params
        while url:
            payload = self._request("GET", url, params=page_params)
            try:
                items = payload["data"]
                url = (payload.get("pages") or {}).get("next_url")
            except (KeyError, TypeError, AttributeError) as e:
                raise DecodingError(f"Malformed collection from {path}") from e
            # next_url already carries the query string
            page_params = None
            results.extend(parse(item) for item in items)
        logger.debug("Collected %d resources from %s", len(results), path)
        return results

    def get_user(self) -> User:
        return parse_user(self._request("GET", "/user"))

    def get_summary(self) -> Summary:
        return parse_summary(self._request("GET", "/summary"))

    def get_subjects(
        self,
        types: Optional[Iterable[str]] = None,
        levels: Optional[Iterable[int]] = None,
        updated_after: Optional[datetime] = None,
    ) -> list[Subject]:
        params = {}
        if types:
            params["types"] = _join(getattr(t, "value", t) for t in types)
        if levels:
            params["levels"] = _join(levels)
        if updated_after is not None:
            params["updated_after"] = format_datetime(updated_after)
        return self._collect("/subjects", params, parse_subject)

    def get_assignments(
        self,
        subject_ids: Optional[Iterable[int]] = None,
        available_before: Optional[datetime] = None,
        available_after: Optional[datetime] = None,
        updated_after: Optional[datetime] = None,
    ) -> list[Assignment]:
        params = {}
        if subject_ids:
            params["subject_ids"] = _join(subject_ids)
        if available_before is not None:
            params["available_before"] = format_datetime(available_before)
        if available_after is not None:
            params["available_after"] = format_datetime(available_after)
        if updated_after is not None:
            params["updated_after"] = format_datetime(updated_after)
        return self._collect("/assignments", params, parse_assignment)

    def start_assignment(self, assignment_id: int, started_at: Optional[datetime] = None) -> Assignment:
        body = {"started_at": format_datetime(started_at)} if started_at else None
        return parse_assignment(self._request("PUT", f"/assignments/{assignment_id}/start", body=body))

    def submit_review(
        self,
        assignment_id: int,
        incorrect_meaning_answers: int,
        incorrect_reading_answers: int,
    ) -> Review:
        body = {
            "review": {
                "assignment_id": assignment_id,
                "incorrect_meaning_answers": incorrect_meaning_answers,
                "incorrect_reading_answers": incorrect_reading_answers,
            }
        }
        review = parse_review(self._request("POST", "/reviews", body=body))
        logger.info(
            "Review for assignment %s: stage %s -> %s",
            assignment_id, review.starting_srs_stage, review.ending_srs_stage,
        )
        return review

    def get_review_statistics(self, updated_after: Optional[datetime] = None) -> list[ReviewStatistic]:
        params = {}
        if updated_after is not None:
            params["updated_after"] = format_datetime(updated_after)
        return self._collect("/review_statistics", params, parse_review_statistic)

    def get_level_progressions(self) -> list[LevelProgression]:
        return self._collect("/level_progressions", {}, parse_level_progression)
