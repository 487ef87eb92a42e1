"""Unit tests for the analytics report."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from journal_toolkit.analytics.report import build_report, classify_topic
from journal_toolkit.conversation_database.data_models.conversation import Conversation
from journal_toolkit.conversation_database.data_models.message import Message, Roles

NOW = datetime(2026, 3, 15, 18, 0, tzinfo=timezone.utc)


def _conversation(conversation_id: str, title: str, days_ago: int) -> Conversation:
    created = NOW - timedelta(days=days_ago)
    return Conversation(
        id=conversation_id,
        user_id="user-1",
        title=title,
        create_timestamp=created,
        update_timestamp=created,
    )


def _message(conversation_id: str, emotion_analysis=None) -> Message:
    return Message(
        id=f"{conversation_id}-{uuid.uuid4()}",
        conversation_id=conversation_id,
        content="entry",
        role=Roles.USER,
        timestamp=NOW,
        emotion_analysis=emotion_analysis,
    )


@pytest.mark.parametrize(
    ("title", "topic"),
    [
        ("Job interview nerves", "Work"),
        ("Social battery", "Relationships"),
        ("Managing anxiety", "Mental Health"),
        ("Plan for spring", "Goals"),
        ("My morning routine", "Daily Life"),
        ("Chat 2026-03-15", "General"),
        ("Work-life goals", "Work"),
    ],
)
def test_classify_topic(title, topic) -> None:
    assert classify_topic(title) == topic


def test_empty_report() -> None:
    report = build_report([], [], "week", now=NOW)

    assert report.total_conversations == 0
    assert report.average_messages_per_conversation == 0
    assert len(report.daily_activity) == 7
    assert all(day.count == 0 for day in report.daily_activity)
    assert report.topic_distribution == []
    assert report.emotional_trends == []


def test_report_aggregates() -> None:
    conversations = [
        _conversation("c1", "Work worries", days_ago=0),
        _conversation("c2", "Chat", days_ago=3),
        _conversation("c3", "Stress at work", days_ago=20),
        _conversation("c4", "Old goals", days_ago=60),
    ]
    messages = [
        _message("c1", {"emotion": "Concerned"}),
        _message("c1", {"emotion": "Positive"}),
        _message("c2", {"emotion": "Positive"}),
        _message("c3", {"score": 0.2}),
        _message("c4", "unstructured"),
    ]

    report = build_report(conversations, messages, "month", now=NOW)

    assert report.total_conversations == 4
    assert report.total_messages == 5
    assert report.average_messages_per_conversation == 1
    assert report.conversations_this_week == 2
    assert report.conversations_this_month == 3
    assert [(t.topic, t.count) for t in report.topic_distribution] == [("Work", 2), ("General", 1), ("Goals", 1)]
    assert [(e.emotion, e.count) for e in report.emotional_trends] == [("Positive", 2), ("Concerned", 1)]


@pytest.mark.parametrize(("time_range", "days"), [("week", 7), ("month", 30), ("all", 90)])
def test_daily_activity_window(time_range, days) -> None:
    conversations = [_conversation("today", "Chat", 0), _conversation("earlier", "Chat", 2)]

    report = build_report(conversations, [], time_range, now=NOW)

    assert len(report.daily_activity) == days
    assert report.daily_activity[-1].date == "Mar 15"
    assert report.daily_activity[-1].count == 1
    assert report.daily_activity[-3].date == "Mar 13"
    assert report.daily_activity[-3].count == 1
