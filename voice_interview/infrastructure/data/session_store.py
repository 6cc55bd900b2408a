"""
JSON file store for interview sessions.

One file per session under ``<root>/sessions``: the saved transcript, the
prepared questions and any feedback records.
"""
import os
import re
import json
import uuid
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

logger = logging.getLogger("session_store")

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class JsonSessionStore:
    """Session persistence backed by JSON files."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir
        self.sessions_dir = os.path.join(root_dir, "sessions")
        os.makedirs(self.sessions_dir, exist_ok=True)

    def _get_session_path(self, session_ref: str) -> str:
        if not session_ref:
            raise ValueError("session_ref is required")
        return os.path.join(self.sessions_dir, f"{_UNSAFE.sub('_', session_ref)}.json")

    def _load(self, session_ref: str) -> Dict[str, Any]:
        path = self._get_session_path(session_ref)
        if not os.path.exists(path):
            return {"session_ref": session_ref}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load session {session_ref}: {e}")
            return {"session_ref": session_ref}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session file for {session_ref}")
            return {"session_ref": session_ref}
        return data

    def _save(self, session_ref: str, data: Dict[str, Any]) -> None:
        data["updated_at"] = datetime.now().isoformat()
        path = self._get_session_path(session_ref)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def save_transcript(self, text: str, session_ref: str) -> None:
        data = self._load(session_ref)
        data["transcript"] = text
        self._save(session_ref, data)
        logger.debug(f"Saved transcript for {session_ref}")

    def get_transcript(self, session_ref: str) -> Optional[str]:
        return self._load(session_ref).get("transcript")

    def set_questions(self, session_ref: str, questions: List[str]) -> None:
        """Store the prepared questions for a session."""
        data = self._load(session_ref)
        data["questions"] = [str(q) for q in questions]
        self._save(session_ref, data)

    def get_questions(self, session_ref: str) -> List[str]:
        questions = self._load(session_ref).get("questions") or []
        if not isinstance(questions, list):
            logger.warning(f"Questions for {session_ref} are not a list; ignoring")
            return []
        return [str(q) for q in questions]

    def save_feedback(self, data: Dict[str, Any], session_ref: str, record_id: Optional[str] = None) -> str:
        """
        Save (or replace) a feedback record.

        Returns:
            The record id
        """
        session = self._load(session_ref)
        feedback = session.setdefault("feedback", {})
        record_id = record_id or uuid.uuid4().hex
        feedback[record_id] = {
            "id": record_id,
            "data": data,
            "created_at": datetime.now().isoformat(),
        }
        self._save(session_ref, session)
        logger.info(f"Saved feedback {record_id} for {session_ref}")
        return record_id

    def get_feedback(self, session_ref: str) -> List[Dict[str, Any]]:
        feedback = self._load(session_ref).get("feedback") or {}
        return sorted(feedback.values(), key=lambda r: r.get("created_at", ""))

    def list_sessions(self) -> List[str]:
        return sorted(
            name[:-len(".json")] for name in os.listdir(self.sessions_dir)
            if name.endswith(".json")
        )
