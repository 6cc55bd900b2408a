"""
Monthly usage minutes kept in a JSON file.
"""
import os
import json
import logging
from datetime import datetime
from typing import Callable, Dict

from ...config import PLAN_LIMIT_MINUTES
from ...interview.schemas import UsageCheck

logger = logging.getLogger("usage")


class UsageLedger:
    """Minutes used per calendar month against a fixed plan limit."""

    def __init__(self, path: str, plan_limit: int = PLAN_LIMIT_MINUTES,
                 now: Callable[[], datetime] = datetime.now):
        self.path = path
        self.plan_limit = plan_limit
        self.now = now
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _month_key(self) -> str:
        return self.now().strftime("%Y-%m")

    def _load(self) -> Dict[str, int]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read usage ledger {self.path}: {e}")
            return {}
        return {k: int(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def get_current_usage(self) -> int:
        return self._load().get(self._month_key(), 0)

    def get_plan_limit(self) -> int:
        return self.plan_limit

    def can_start_session(self) -> UsageCheck:
        current = self.get_current_usage()
        return UsageCheck(
            can_start=current < self.plan_limit,
            current_usage=current,
            plan_limit=self.plan_limit,
        )

    def add_session_usage(self, minutes: int) -> int:
        """
        Add minutes to this month's total.

        Returns:
            The new monthly total
        """
        if minutes < 0:
            raise ValueError(f"minutes must be non-negative, got {minutes}")
        data = self._load()
        key = self._month_key()
        data[key] = data.get(key, 0) + int(minutes)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        logger.info(f"Usage for {key}: {data[key]}/{self.plan_limit} minutes")
        return data[key]
