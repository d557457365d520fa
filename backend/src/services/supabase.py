from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from loguru import logger

from config import Configuration


class SupabaseError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class _RetryPolicy:
    retries: int = 3
    base_delay: float = 0.5


Filter = Tuple[str, str, Any]  # column, operator, value


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class SupabaseClient:
    """Minimal PostgREST client for the hosted Lumen database."""

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        cfg.require_supabase()
        self.cfg = cfg
        self.base = f"{(cfg.supabase_url or '').rstrip('/')}/rest/v1"
        self.session = session or requests.Session()
        self.policy = _RetryPolicy()

    def _headers(self) -> Dict[str, str]:
        key = self.cfg.supabase_anon_key or ""
        return {
            "Accept": "application/json",
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: List[Tuple[str, str]],
        *,
        body: Any = None,
        prefer: Optional[str] = None,
        retry: bool = True,
    ) -> Any:
        url = f"{self.base}{path}"
        headers = self._headers()
        if prefer:
            headers["Prefer"] = prefer
        policy = self.policy
        retries = policy.retries if retry else 0
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.request(
                    method, url, headers=headers, params=params, json=body, timeout=self.cfg.supabase_timeout
                )
            except requests.RequestException as exc:
                if attempt <= retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise SupabaseError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= retries:
                    logger.debug("retrying {} {} after status {} (attempt {})", method, path, resp.status_code, attempt)
                    time.sleep(policy.base_delay * attempt)
                    continue
                snippet = resp.text[:300]
                raise SupabaseError(f"upstream {resp.status_code}: {snippet}", resp.status_code)

            if not resp.ok:
                snippet = resp.text[:300]
                raise SupabaseError(f"upstream {resp.status_code}: {snippet}", resp.status_code)

            # return=minimal writes answer 201/204 with no body
            if resp.status_code == 204 or not resp.content:
                return []
            try:
                return resp.json()
            except ValueError:
                raise SupabaseError("invalid json response")

    @staticmethod
    def _filter_params(filters: Sequence[Filter]) -> List[Tuple[str, str]]:
        params: list[Tuple[str, str]] = []
        for column, op, value in filters:
            if op == "in":
                joined = ",".join(_encode_value(v) for v in value)
                params.append((column, f"in.({joined})"))
            else:
                params.append((column, f"{op}.{_encode_value(value)}"))
        return params

    @staticmethod
    def _rows(payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise SupabaseError("expected a list of rows")
        return payload

    def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a PostgREST select, e.g. filters=[("status", "eq", "approved")]."""
        params: list[Tuple[str, str]] = [("select", columns)]
        params.extend(self._filter_params(filters))
        if order:
            params.append(("order", ",".join(order)))
        if limit is not None:
            params.append(("limit", str(limit)))
        return self._rows(self._request("GET", f"/{table}", params))

    def insert(self, table: str, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        # not retried: a 5xx after the row was written would duplicate it
        payload = self._request("POST", f"/{table}", [], body=row, prefer="return=representation", retry=False)
        return self._rows(payload)

    def upsert(self, table: str, row: Dict[str, Any], *, on_conflict: str) -> List[Dict[str, Any]]:
        payload = self._request(
            "POST",
            f"/{table}",
            [("on_conflict", on_conflict)],
            body=row,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return self._rows(payload)

    def update(self, table: str, values: Dict[str, Any], *, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("update without filters would touch every row")
        payload = self._request(
            "PATCH", f"/{table}", self._filter_params(filters), body=values, prefer="return=representation"
        )
        return self._rows(payload)

    def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("delete without filters would touch every row")
        payload = self._request("DELETE", f"/{table}", self._filter_params(filters), prefer="return=representation")
        return self._rows(payload)
