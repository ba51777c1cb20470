"""HTTP API client for interacting with the Nyumba Connect server."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config import REQUEST_TIMEOUT
from .errors import APIError, TransportError


class APIClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"X-Requested-With": "XMLHttpRequest"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _json(resp: requests.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError(f"Malformed response from {resp.url} (status {resp.status_code})") from exc
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected response body from {resp.url}")
        return data

    def login(self, login: str, password: str) -> Dict[str, Any]:
        resp = requests.post(
            f"{self.base_url}/auth/login", json={"login": login, "password": password}, timeout=self.timeout
        )
        resp.raise_for_status()
        data = resp.json()
        self.token = data["token"]
        return data

    def fetch_messages(self, mentorship_id: int, last_message_id: int = 0) -> Dict[str, Any]:
        """Return the raw fetch payload; any non-200 answer is a ``TransportError``."""
        try:
            resp = requests.get(
                f"{self.base_url}/messages/fetch_messages.php",
                params={"mentorship_id": mentorship_id, "last_message_id": last_message_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        if resp.status_code != 200:
            raise TransportError(f"fetch_messages returned status {resp.status_code}")
        return self._json(resp)

    def send_message(self, mentorship_id: int, message_text: str, csrf_token: str) -> Dict[str, Any]:
        """Post a message; error statuses with a JSON body are returned for the caller to inspect."""
        try:
            resp = requests.post(
                f"{self.base_url}/messages/send_message.php",
                data={"mentorship_id": mentorship_id, "message_text": message_text, "csrf_token": csrf_token},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        return self._json(resp)

    def _checked(self, resp: requests.Response) -> Dict[str, Any]:
        data = self._json(resp)
        if resp.status_code >= 400 or data.get("success") is False:
            error = data.get("error") or data.get("detail") or f"Request failed with status {resp.status_code}"
            raise APIError(str(error), resp.status_code)
        return data

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = requests.get(f"{self.base_url}{path}", params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        return self._checked(resp)

    def _post(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = requests.post(f"{self.base_url}{path}", data=data, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc
        return self._checked(resp)

    def list_conversations(self) -> List[Dict[str, Any]]:
        return self._get("/messages/inbox.php")["conversations"]

    def list_resources(
        self, page: int = 1, search: str = "", sort: str = "created_at", order: str = "DESC"
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "sort": sort, "order": order}
        if search:
            params["search"] = search
        return self._get("/resources/list.php", params)

    def download_resource(self, resource_id: int, dest_dir: Path, filename: str) -> Path:
        target = Path(dest_dir) / Path(filename).name
        with requests.get(
            f"{self.base_url}/resources/download.php",
            params={"id": resource_id},
            headers=self._headers(),
            timeout=self.timeout,
            stream=True,
        ) as resp:
            resp.raise_for_status()
            with target.open("wb") as f:
                for chunk in resp.iter_content(chunk_size=8192):
                    f.write(chunk)
        return target

    def delete_resource(self, resource_id: int, csrf_token: str) -> Dict[str, Any]:
        return self._post("/resources/delete.php", {"resource_id": resource_id, "csrf_token": csrf_token})

    def list_alumni(self) -> List[Dict[str, Any]]:
        return self._get("/mentorship/send_request.php")["alumni"]

    def send_mentorship_request(self, alumni_id: int, message: str, csrf_token: str) -> Dict[str, Any]:
        data = {"alumni_id": alumni_id, "message": message, "csrf_token": csrf_token}
        return self._post("/mentorship/send_request.php", data)["request"]

    def list_mentorship_requests(self) -> Dict[str, Any]:
        return self._get("/mentorship/requests.php")

    def respond_mentorship_request(self, request_id: int, response: str, csrf_token: str) -> Dict[str, Any]:
        data = {"request_id": request_id, "response": response, "csrf_token": csrf_token}
        return self._post("/mentorship/respond_request.php", data)
