"""
Telegram alerts for execution events (HTTP only, Bot API sendMessage).
Disabled when TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID is missing.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ....core.gateways.execution_publisher import ExecutionPublisher


def format_event(event: str, payload: Dict[str, Any]) -> Optional[str]:
    if event == "execution.completed":
        return (
            f"✅ DCA executed {payload.get('pair_id', '')}\n"
            f"in: {payload.get('amount_in')} | out: {payload.get('amount_out')}\n"
            f"tx: {payload.get('tx_hash')}"
        )
    if event == "execution.failed":
        return f"❌ DCA failed (strategy {payload.get('strategy_id')})\n{payload.get('error')}"
    # execution.ready is too chatty for a chat
    return None


class TelegramNotifier(ExecutionPublisher):

    def __init__(self, token: str, chat_id: str, timeout_sec: float = 10.0, logger: Optional[logging.Logger] = None):
        self._token = token
        self._chat_id = chat_id
        self._timeout = timeout_sec
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self.enabled = bool(token and chat_id)
        if not self.enabled:
            self._logger.warning("Telegram not configured (missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID). Alerts will be skipped.")
        self._base = f"https://api.telegram.org/bot{token}"

    async def send_text(self, text: str) -> Optional[int]:
        if not self.enabled:
            return None
        payload = {"chat_id": self._chat_id, "text": text, "disable_web_page_preview": True}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.post(f"{self._base}/sendMessage", json=payload)
        except httpx.HTTPError as exc:
            self._logger.warning("telegram error: %s", exc)
            return None
        if r.status_code != 200:
            self._logger.warning("telegram HTTP %s: %s", r.status_code, r.text[:300])
            return None
        data = r.json()
        if not data.get("ok"):
            self._logger.warning("telegram API not ok: %s", str(data)[:300])
            return None
        return data.get("result", {}).get("message_id")

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        text = format_event(event, payload)
        if text:
            await self.send_text(text)
