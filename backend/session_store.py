"""In-memory session store with TTL cleanup.

A session collects the files a user uploaded and hands out stable integer ids
for the teams found in them, so a later generate call can pick and order
teams by id.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from backend.metrics import prometheus as metrics
from chelib.models import Team

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    filename: str
    parsed: object  # TeamFile or TournamentFile
    team_ids: List[int]


@dataclass
class CheSession:
    created_at: float
    last_access: float
    files: List[UploadedFile] = field(default_factory=list)
    teams: Dict[int, Team] = field(default_factory=dict)
    team_files: Dict[int, str] = field(default_factory=dict)  # team id -> filename
    next_team_id: int = 0

    def add_file(self, filename: str, parsed) -> UploadedFile:
        ids = []
        for team in parsed.teams:
            team_id = self.next_team_id
            self.next_team_id += 1
            self.teams[team_id] = team
            self.team_files[team_id] = filename
            ids.append(team_id)
        uploaded = UploadedFile(filename=filename, parsed=parsed, team_ids=ids)
        self.files.append(uploaded)
        return uploaded

    def team_list(self) -> List[Tuple[int, Team]]:
        return sorted(self.teams.items())


class SessionStore:
    def __init__(self, ttl_minutes: int = 30, cleanup_interval_minutes: int = 5):
        self._store: Dict[str, CheSession] = {}
        self._ttl_seconds = ttl_minutes * 60
        self._cleanup_interval = cleanup_interval_minutes * 60
        self._cleanup_task: Optional[asyncio.Task] = None

    def configure(self, ttl_minutes: int, cleanup_interval_minutes: int):
        self._ttl_seconds = ttl_minutes * 60
        self._cleanup_interval = cleanup_interval_minutes * 60

    def create(self) -> Tuple[str, CheSession]:
        session_id = str(uuid.uuid4())
        now = time.time()
        session = CheSession(created_at=now, last_access=now)
        self._store[session_id] = session
        metrics.set_active_sessions(len(self._store))
        return session_id, session

    def get(self, session_id: str) -> Optional[CheSession]:
        session = self._store.get(session_id)
        if session is None:
            return None
        session.last_access = time.time()
        return session

    def delete(self, session_id: str) -> bool:
        if session_id in self._store:
            del self._store[session_id]
            metrics.set_active_sessions(len(self._store))
            return True
        return False

    def __len__(self):
        return len(self._store)

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        expired = [
            sid
            for sid, sess in self._store.items()
            if now - sess.last_access > self._ttl_seconds
        ]
        for sid in expired:
            del self._store[sid]
        metrics.set_active_sessions(len(self._store))
        if expired:
            logger.info("Expired %d sessions", len(expired))
        return len(expired)

    async def start_cleanup_task(self):
        async def cleanup_loop():
            while True:
                await asyncio.sleep(self._cleanup_interval)
                self.cleanup_expired()

        self._cleanup_task = asyncio.create_task(cleanup_loop())

    async def stop_cleanup_task(self):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None


session_store = SessionStore()
