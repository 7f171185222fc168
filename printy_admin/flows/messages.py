"""Builders for the bot utterances the flows emit."""

from typing import Iterable, Optional

from .state import BotMessage

END_CHAT_TEXT = "Thanks! Chat ended."
FALLBACK_TEXT = "Please use the options below."
END_CHAT = "End Chat"


def bot(text: str) -> BotMessage:
    return BotMessage(text=text)


def bots(*texts: str) -> list[BotMessage]:
    return [BotMessage(text=text) for text in texts if text]


def end_chat_message() -> BotMessage:
    return bot(END_CHAT_TEXT)


def status_change_message(entity_id: str, previous: str, new: str) -> BotMessage:
    return bot(f"✅ {entity_id}: {previous} → {new}")


def quote_created_message(order_id: str, total: str) -> BotMessage:
    return bot(f"📋 Quote created for {order_id}. Set to Pending with total {total}.")


def service_updated_message(code: str, field: str, old: str, new: str) -> BotMessage:
    return bot(f'✅ Updated {code} {field}: "{old}" → "{new}"')


def ticket_reply_message(ticket_id: str) -> BotMessage:
    return bot(f"📩 Reply posted to {ticket_id}.")


def category_moved_message(name: str, old: str, new: str) -> BotMessage:
    return bot(f'✅ Moved {name} from "{old}" to "{new}"')


def not_found_message(kind: str) -> BotMessage:
    return bot(f"{kind.capitalize()} not found.")


def selection_lines(rows: Iterable[tuple[str, str, str, Optional[str]]]) -> list[str]:
    """Render (id, name, status, category) rows as "ID • name • status[ • category]"."""
    lines = []
    for entity_id, name, status, category in rows:
        suffix = f" • {category}" if category else ""
        lines.append(f"{entity_id} • {name} • {status}{suffix}")
    return lines


def selection_list_messages(
    rows: list[tuple[str, str, str, Optional[str]]], kind: str
) -> list[BotMessage]:
    messages = [bot(f"You selected {len(rows)} {kind}(s):")]
    messages.extend(bot(line) for line in selection_lines(rows))
    return messages


def with_end_chat(options: Iterable[str]) -> list[str]:
    return [*options, END_CHAT]
