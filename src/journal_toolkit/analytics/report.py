"""
Journaling analytics.

A read-only consumer of the conversation list and message log: 'build_report'
recomputes every aggregate from scratch on each call and never writes anywhere.

Topics are derived from conversation titles with a small keyword table; emotions
are read from each message's 'emotion_analysis' payload when it carries an
'emotion' label.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field

from journal_toolkit.conversation_database.data_models.conversation import Conversation
from journal_toolkit.conversation_database.data_models.message import Message
from journal_toolkit.utils.time import get_current_timestamp

TimeRange = Literal["week", "month", "all"]

TIME_RANGE_DAYS: dict[str, int] = {"week": 7, "month": 30, "all": 90}

# First match wins, in this order.
TOPIC_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Work", ("work", "job")),
    ("Relationships", ("relationship", "social")),
    ("Mental Health", ("anxiety", "stress")),
    ("Goals", ("goal", "plan")),
    ("Daily Life", ("daily", "routine")),
]
DEFAULT_TOPIC = "General"


class DailyCount(BaseModel):
    date: str
    count: int


class TopicCount(BaseModel):
    topic: str
    count: int


class EmotionCount(BaseModel):
    emotion: str
    count: int


class AnalyticsReport(BaseModel):
    total_conversations: int
    total_messages: int
    average_messages_per_conversation: int
    conversations_this_week: int
    conversations_this_month: int
    daily_activity: list[DailyCount] = Field(default_factory=list)
    topic_distribution: list[TopicCount] = Field(default_factory=list)
    emotional_trends: list[EmotionCount] = Field(default_factory=list)


def classify_topic(title: str) -> str:
    lowered = title.lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return DEFAULT_TOPIC


def _daily_activity(conversations: Sequence[Conversation], days: int, now: datetime) -> list[DailyCount]:
    created_per_day = Counter(c.create_timestamp.astimezone(now.tzinfo).date() for c in conversations)
    buckets = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        buckets.append(DailyCount(date=day.strftime("%b %d"), count=created_per_day.get(day, 0)))
    return buckets


def _emotional_trends(messages: Sequence[Message]) -> list[EmotionCount]:
    labels = Counter(
        message.emotion_analysis["emotion"]
        for message in messages
        if isinstance(message.emotion_analysis, dict) and isinstance(message.emotion_analysis.get("emotion"), str)
    )
    return [EmotionCount(emotion=emotion, count=count) for emotion, count in labels.most_common()]


def build_report(
    conversations: Sequence[Conversation],
    messages: Sequence[Message],
    time_range: TimeRange = "month",
    now: datetime | None = None,
) -> AnalyticsReport:
    """Aggregate conversations and their messages into an 'AnalyticsReport'.

    Args:
        conversations: The user's conversations.
        messages: Messages across those conversations.
        time_range: Width of the daily activity window: 7, 30 or 90 days.
        now: Reference time, defaults to the current UTC time.
    """
    now = now or get_current_timestamp()
    total_conversations = len(conversations)
    total_messages = len(messages)
    average = round(total_messages / total_conversations) if total_conversations else 0

    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    topics: Counter[str] = Counter()
    for conversation in conversations:
        topics[classify_topic(conversation.title)] += 1

    return AnalyticsReport(
        total_conversations=total_conversations,
        total_messages=total_messages,
        average_messages_per_conversation=average,
        conversations_this_week=sum(1 for c in conversations if c.create_timestamp >= week_ago),
        conversations_this_month=sum(1 for c in conversations if c.create_timestamp >= month_ago),
        daily_activity=_daily_activity(conversations, TIME_RANGE_DAYS[time_range], now),
        topic_distribution=[TopicCount(topic=topic, count=count) for topic, count in topics.items()],
        emotional_trends=_emotional_trends(messages),
    )
