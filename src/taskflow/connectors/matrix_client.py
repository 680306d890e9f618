# src/taskflow/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from nio import AsyncClient, AsyncClientConfig, JoinResponse, LoginResponse

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"


@dataclass(frozen=True, slots=True)
class MatrixSession:
    """Access token + device of the notifier account, persisted between runs."""

    user_id: str
    device_id: str
    access_token: str

    @classmethod
    def load(cls, path: Path) -> MatrixSession:
        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("session file must contain a JSON object")
        try:
            session = cls(
                user_id=str(data["user_id"]),
                device_id=str(data["device_id"]),
                access_token=str(data["access_token"]),
            )
        except KeyError as e:
            raise ValueError(f"session file is missing {e}") from None
        if not all((session.user_id, session.device_id, session.access_token)):
            raise ValueError("session file has empty fields")
        return session

    def save(self, path: Path) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(self)), "utf-8")
        os.replace(tmp, path)
        try:
            os.chmod(path, 0o600)
        except OSError:
            # Not supported everywhere (e.g. Windows).
            pass

    def apply(self, client: AsyncClient) -> None:
        client.access_token = self.access_token
        client.user_id = self.user_id
        client.device_id = self.device_id


async def _login(client: AsyncClient, password: str, device_name: str) -> MatrixSession | None:
    logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)
    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        return None
    return MatrixSession(user_id=resp.user_id, device_id=resp.device_id, access_token=resp.access_token)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Create the AsyncClient used to post task notifications.

    A saved session under matrix_store_path is reused; the password is only
    needed once, to create that session. Returns None (after logging why)
    when Matrix is not usable.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/taskflow/matrix_store")))

    if not homeserver or not user_id:
        logger.error(
            "Matrix is not configured: set TASKFLOW_MATRIX_HOMESERVER and TASKFLOW_MATRIX_USER_ID"
        )
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = store_dir / SESSION_FILE

    # Send-only client: no sync loop, so there are no sync tokens to keep.
    client = AsyncClient(homeserver, user_id, config=AsyncClientConfig(store_sync_tokens=False))

    if session_file.exists():
        try:
            MatrixSession.load(session_file).apply(client)
            logger.info("Matrix session restored for %s", client.user_id)
            return client
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unusable %s, will try password login: %r", session_file, e)

    if not password:
        logger.error(
            "No saved Matrix session and no password. "
            "Set TASKFLOW_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    session = await _login(client, password, f"{getattr(settings, 'app_name', 'taskflow')} notifier")
    if session is None:
        await client.close()
        return None

    try:
        session.save(session_file)
        logger.info("Matrix session saved to %s (user=%s)", session_file, session.user_id)
    except OSError as e:
        # Logged in anyway; the next start will log in again.
        logger.error("Failed to write %s: %r", session_file, e)

    return client


async def ensure_joined(client: AsyncClient, room_id: str) -> bool:
    """Join the notify room (no-op if already a member). Returns False on failure."""
    resp = await client.join(room_id)
    if isinstance(resp, JoinResponse):
        return True
    logger.warning("Matrix join failed room=%s: %r", room_id, resp)
    return False
