"""
Alert formatting component for the HotUKDeals Deal Filter system.

This module formats one or more deliverable deals into a batched alert with
platform-specific payloads. Discord and Slack both limit the size of a single
message, so large batches are split into several payloads.
"""

import zlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..interfaces import IAlertFormatter
from ..models.alert import FormattedAlert
from ..models.delivery import Deliverable

# Discord allows up to 10 embeds per message
MAX_DEALS_PER_MESSAGE = 10
MAX_PREVIEW_DEALS = 5

DEAL_COLORS = [
    0x4CAF50,  # Green
    0x2196F3,  # Blue
    0xFF9800,  # Orange
    0x9C27B0,  # Purple
    0xF44336,  # Red
    0x00BCD4,  # Cyan
    0x8BC34A,  # Light Green
    0x3F51B5,  # Indigo
    0xFF5722,  # Deep Orange
    0x607D8B,  # Blue Grey
]


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def _unique_search_terms(deals: List[Deliverable]) -> List[str]:
    terms: List[str] = []
    for deal in deals:
        if deal.search_term not in terms:
            terms.append(deal.search_term)
    return terms


def _chunks(deals: List[Deliverable], size: int) -> List[List[Deliverable]]:
    return [deals[i : i + size] for i in range(0, len(deals), size)]


class AlertFormatter(IAlertFormatter):
    """Formats batches of deals into alert messages for webhook platforms."""

    def __init__(self, now: Optional[datetime] = None):
        """
        Initialize the alert formatter.

        Args:
            now: Fixed timestamp for embeds; defaults to the time of formatting
        """
        self._now = now
        self.platform_formatters = {
            "discord": self._format_discord,
            "slack": self._format_slack,
        }

    def format_alert(self, deals: List[Deliverable]) -> FormattedAlert:
        """
        Format deliverable deals into a single batched alert.

        Args:
            deals: Deals to announce, in delivery order

        Returns:
            FormattedAlert: Formatted alert ready for delivery
        """
        if not deals:
            raise ValueError("Cannot format an alert without deals")

        alert = FormattedAlert(
            title=self._create_alert_title(deals),
            message=self.create_lock_screen_content(deals),
            deal_count=len(deals),
            platform_specific_data={
                platform: formatter(deals)
                for platform, formatter in self.platform_formatters.items()
            },
        )

        alert.validate()
        return alert

    def _create_alert_title(self, deals: List[Deliverable]) -> str:
        terms = ", ".join(_unique_search_terms(deals))
        if len(deals) == 1:
            return _truncate(f"New deal for {terms}", 200)
        return _truncate(f"{len(deals)} new deals for {terms}", 200)

    @staticmethod
    def deal_color(deal: Deliverable) -> int:
        """Stable embed colour per search term."""
        return DEAL_COLORS[zlib.crc32(deal.search_term.encode("utf-8")) % len(DEAL_COLORS)]

    @staticmethod
    def format_deal_preview(deal: Deliverable) -> str:
        """One-line preview of a deal for list notifications."""
        preview = _truncate(deal.title, 60)

        details = [value for value in (deal.price, deal.merchant) if value]
        if details:
            preview += f" - {' @ '.join(details)}"

        return preview

    def create_lock_screen_content(self, deals: List[Deliverable]) -> str:
        """Content line that stays readable in a phone notification."""
        search_terms = ", ".join(_unique_search_terms(deals))

        if len(deals) == 1:
            deal = deals[0]
            content = f"🆕 **{search_terms}**\n"

            details = []
            if deal.price:
                details.append(f"💰 {deal.price}")
            if deal.merchant:
                details.append(f"🏪 {deal.merchant}")
            if details:
                content += f"{'  •  '.join(details)}\n"

            content += f"> {_truncate(deal.title, 80)}"
            return content

        lines = [f"🆕 **{len(deals)} new deals** for **{search_terms}**"]
        for deal in deals[:MAX_PREVIEW_DEALS]:
            lines.append(f"• {self.format_deal_preview(deal)}")

        if len(deals) > MAX_PREVIEW_DEALS:
            lines.append(f"_...and {len(deals) - MAX_PREVIEW_DEALS} more_")

        return "\n".join(lines)

    def _timestamp(self) -> str:
        return (self._now or datetime.now(timezone.utc)).isoformat()

    def _create_deal_embed(self, deal: Deliverable) -> Dict[str, Any]:
        """Rich Discord embed for a single deal."""
        fields: List[Dict[str, Any]] = []

        if deal.price:
            fields.append({"name": "Price", "value": f"💰 **{deal.price}**", "inline": True})

        if deal.merchant:
            fields.append({"name": "Merchant", "value": f"🏪 {deal.merchant}", "inline": True})

        if deal.match_summary:
            fields.append(
                {
                    "name": "Why Matched",
                    "value": _truncate(f"🔍 {deal.match_summary}", 1024),
                    "inline": False,
                }
            )

        return {
            "title": _truncate(deal.title, 256),
            "url": deal.link,
            "color": self.deal_color(deal),
            "fields": fields,
            "footer": {"text": f"Search Term: {deal.search_term}"},
            "timestamp": self._timestamp(),
        }

    def _format_discord(self, deals: List[Deliverable]) -> List[Dict[str, Any]]:
        """Discord webhook payloads; content goes on the first message only."""
        payloads = []
        for index, chunk in enumerate(_chunks(deals, MAX_DEALS_PER_MESSAGE)):
            payload: Dict[str, Any] = {
                "embeds": [self._create_deal_embed(deal) for deal in chunk]
            }
            if index == 0:
                payload["content"] = self.create_lock_screen_content(deals)
            payloads.append(payload)
        return payloads

    def _format_slack(self, deals: List[Deliverable]) -> List[Dict[str, Any]]:
        """Slack webhook payloads using block kit sections."""
        payloads = []
        for index, chunk in enumerate(_chunks(deals, MAX_DEALS_PER_MESSAGE)):
            blocks: List[Dict[str, Any]] = []

            if index == 0:
                blocks.append(
                    {
                        "type": "header",
                        "text": {
                            "type": "plain_text",
                            "text": _truncate(self._create_alert_title(deals), 150),
                        },
                    }
                )

            for deal in chunk:
                lines = [f"*<{deal.link}|{deal.title}>*"]
                details = []
                if deal.price:
                    details.append(f"💰 {deal.price}")
                if deal.merchant:
                    details.append(f"🏪 {deal.merchant}")
                if details:
                    lines.append("  •  ".join(details))
                if deal.match_summary:
                    lines.append(f"🔍 _{deal.match_summary}_")

                blocks.append(
                    {
                        "type": "section",
                        "text": {"type": "mrkdwn", "text": _truncate("\n".join(lines), 3000)},
                    }
                )

            payloads.append(
                {
                    "text": self.create_lock_screen_content(deals) if index == 0 else "",
                    "blocks": blocks,
                }
            )
        return payloads
