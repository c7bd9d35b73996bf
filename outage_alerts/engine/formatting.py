from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from html import escape

from outage_alerts.core.constants import DATE_FORMAT, MINUTES_PER_DAY
from outage_alerts.core.models import OutageStatus, Period, Schedule
from outage_alerts.engine.clock import parse_time_to_minutes

SEPARATOR = "━━━━━━━━━━━━━━━━"


@dataclass
class DayChanges:
    added: list[Period] = field(default_factory=list)
    removed: list[Period] = field(default_factory=list)


def calculate_duration(start: str | None, end: str | None) -> int:
    """Duration for display; an end before the start wraps past midnight."""
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return 0
    if end_minutes < start_minutes:
        return MINUTES_PER_DAY - start_minutes + end_minutes
    return end_minutes - start_minutes


def format_duration(minutes: int) -> str:
    if minutes <= 0:
        return ""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins} хв"
    if mins == 0:
        return f"{hours} год"
    return f"{hours} год {mins} хв"


def _same_period(left: Period, right: Period) -> bool:
    return left.label == right.label and left.status == right.status


def _periods_by_date(schedule: Schedule, queue: str) -> dict[date | None, list[Period]]:
    return {day.event_date: list(day.queues[queue]) for day in schedule if queue in day.queues}


def compare_schedules(old: Schedule, new: Schedule, queue: str) -> dict[date | None, DayChanges]:
    old_by_date = _periods_by_date(old, queue)
    new_by_date = _periods_by_date(new, queue)

    changes: dict[date | None, DayChanges] = {}
    for day in set(old_by_date) | set(new_by_date):
        old_periods = old_by_date.get(day, [])
        new_periods = new_by_date.get(day, [])
        diff = DayChanges(
            added=[p for p in new_periods if not any(_same_period(p, o) for o in old_periods)],
            removed=[p for p in old_periods if not any(_same_period(p, n) for n in new_periods)],
        )
        if diff.added or diff.removed:
            changes[day] = diff
    return changes


def _date_label(day: date | None) -> str:
    return day.strftime(DATE_FORMAT) if day else "Сьогодні"


def _period_line(period: Period) -> str:
    duration = format_duration(calculate_duration(period.start_time, period.end_time))
    suffix = f" – на {duration}" if duration else ""
    return f"{escape(period.label)}{suffix}"


def format_schedule(
    schedule: Schedule,
    queue: str,
    changes: dict[date | None, DayChanges] | None = None,
) -> str:
    text = f"⚡️ <b>Черга {escape(queue)}</b>\n{SEPARATOR}\n\n"
    days = [day for day in schedule if queue in day.queues]
    if not days:
        return text + "Немає даних"

    changes = changes or {}
    for day in sorted(days, key=lambda d: d.event_date or date.min):
        text += f"📅 <b>{_date_label(day.event_date)}</b>\n\n"

        removed = changes[day.event_date].removed if day.event_date in changes else []
        for period in removed:
            text += f"   ❌ <s>{_period_line(period)}</s>\n\n"

        outages = [p for p in day.queues[queue] if p.status is OutageStatus.SCHEDULED_OUTAGE]
        if not outages:
            text += "   🟢 Відключення не заплановані\n\n"
        for period in outages:
            text += f"   🔴 {_period_line(period)}\n\n"

        if day.approved_since:
            text += f"✅ <i>Затверджено: {escape(day.approved_since)}</i>\n\n"

    return text.strip()


def schedule_update_message(schedule_text: str) -> str:
    return f"📢 <b>Оновлення графіку відключень</b>\n\n{schedule_text}"


def upcoming_outage_message(queue: str, start_time: str, minutes_before: int, event_date: date | None = None) -> str:
    date_line = f"\n📅 Дата: <code>{event_date.strftime(DATE_FORMAT)}</code>" if event_date else ""
    return (
        f"⏰ <b>Увага! Відключення світла</b>\n{SEPARATOR}\n\n"
        f"⚡️ Черга: <b>{escape(queue)}</b>{date_line}\n"
        f"🕐 Початок: <code>{start_time}</code>\n"
        f"⏳ Залишилось: <b>{minutes_before} хв</b>"
    )


def power_return_message(queue: str, end_time: str, event_date: date | None = None) -> str:
    date_line = f"\n📅 Дата: <code>{event_date.strftime(DATE_FORMAT)}</code>" if event_date else ""
    return (
        f"✅ <b>Світло повернулось!</b>\n{SEPARATOR}\n\n"
        f"⚡️ Черга: <b>{escape(queue)}</b>{date_line}\n"
        f"🕐 Час: <code>{end_time}</code>\n"
        "💡 <i>Відключення завершено</i>"
    )
