"""Plain-text and HTML bodies for reminder, escalation and admin digest emails."""
from __future__ import annotations
from html import escape
from typing import List

from childupdates.domain.compliance.models import NoticeTier, OverdueChild, Urgency
from childupdates.domain.update.models import ReportType, UpdateSubmission

ORG_NAME = "Be A Number, International"

_URGENCY_COLORS = {
    Urgency.HIGH: "#dc2626",
    Urgency.MEDIUM: "#f59e0b",
    Urgency.LOW: "#1e3a5f",
}

_REMINDER_LEADS = {
    NoticeTier.INITIAL: "A new update period has begun.",
    NoticeTier.FOLLOW_UP: "This is a follow-up reminder.",
    NoticeTier.FINAL: "FINAL REMINDER - Updates Due Today",
}

# Lists longer than this are truncated with an "... and N more" line
HTML_LIST_LIMIT = 20
TEXT_LIST_LIMIT = 30
DIGEST_OVERDUE_LIMIT = 10


def type_name(report_type: ReportType) -> str:
    return "Field" if report_type == ReportType.FIELD else "Academic"


def reminder_subject(tier: NoticeTier, report_type: ReportType, period_or_term: str) -> str:
    name = type_name(report_type)
    if tier == NoticeTier.INITIAL:
        return f"Action Required: Submit {name} Updates for {period_or_term}"
    if tier == NoticeTier.FOLLOW_UP:
        return f"Reminder: {name} Updates Due Soon - {period_or_term}"
    return f"FINAL REMINDER: {name} Updates Due Today - {period_or_term}"


def escalation_subject(report_type: ReportType, period_or_term: str, missing_count: int, days_overdue: int) -> str:
    return (
        f"ESCALATION: {missing_count} Overdue {type_name(report_type)} Updates "
        f"({days_overdue} days) - {period_or_term}"
    )


def _child_spans(child_ids: List[str], limit: int) -> str:
    spans = " ".join(f'<span class="child-id">{escape(cid)}</span>' for cid in child_ids[:limit])
    if len(child_ids) > limit:
        spans += f"<br><br><em>... and {len(child_ids) - limit} more</em>"
    return spans


def reminder_html(tier: NoticeTier, report_type: ReportType, period_or_term: str, child_ids: List[str], form_url: str) -> str:
    lead = _REMINDER_LEADS[tier]
    if tier == NoticeTier.FINAL:
        lead = f'<strong style="color: #dc2626;">{lead}</strong>'
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <h2>{type_name(report_type)} Update Reminder</h2>
  <p>{lead}</p>
  <p>
    <strong>Update Period:</strong> {escape(period_or_term)}<br>
    <strong>Update Type:</strong> {type_name(report_type)}
  </p>
  <p><strong>{len(child_ids)} children need updates:</strong></p>
  <div class="child-list">{_child_spans(child_ids, HTML_LIST_LIMIT)}</div>
  <p>Please submit updates using the approved intake form:</p>
  <p><a href="{escape(form_url, quote=True)}">Submit Updates</a></p>
  <p style="font-size: 14px; color: #666;">Do not reply to this email. Updates must be submitted through the official form only.</p>
  <p style="font-size: 12px; color: #666;">{ORG_NAME}</p>
</body>
</html>
"""


def reminder_text(tier: NoticeTier, report_type: ReportType, period_or_term: str, child_ids: List[str], form_url: str) -> str:
    listed = ", ".join(child_ids[:TEXT_LIST_LIMIT])
    if len(child_ids) > TEXT_LIST_LIMIT:
        listed += f"\n... and {len(child_ids) - TEXT_LIST_LIMIT} more"
    lines = [
        f"{type_name(report_type).upper()} UPDATE REMINDER",
        _REMINDER_LEADS[tier],
        "",
        f"Update Period: {period_or_term}",
        f"Update Type: {type_name(report_type)}",
        "",
        f"The following {len(child_ids)} children are missing updates:",
        listed,
        "",
        "Please submit updates using the approved intake form:",
        form_url,
        "",
        "IMPORTANT: Do not reply to this email. Updates must be submitted through the official form only.",
        "--",
        ORG_NAME,
    ]
    return "\n".join(lines)


def escalation_html(
    report_type: ReportType,
    period_or_term: str,
    responsible_role: str,
    child_ids: List[str],
    days_overdue: int,
    urgency: Urgency,
) -> str:
    color = _URGENCY_COLORS[urgency]
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
    <h1>ESCALATION NOTICE ({urgency.value.upper()})</h1>
    <h2>Overdue {type_name(report_type)} Updates</h2>
  </div>
  <p>
    <strong>Missing Updates:</strong> {len(child_ids)}<br>
    <strong>Days Overdue:</strong> {days_overdue}<br>
    <strong>Update Period:</strong> {escape(period_or_term)}<br>
    <strong>Responsible Role:</strong> {escape(responsible_role)}
  </p>
  <p><strong>Action Required:</strong> Follow up with {escape(responsible_role)} to ensure these updates are submitted as soon as possible.</p>
  <div class="child-list">{_child_spans(child_ids, len(child_ids))}</div>
  <p style="font-size: 12px; color: #666;">{ORG_NAME}</p>
</body>
</html>
"""


def escalation_text(
    report_type: ReportType,
    period_or_term: str,
    responsible_role: str,
    child_ids: List[str],
    days_overdue: int,
    urgency: Urgency,
) -> str:
    lines = [
        f"ESCALATION NOTICE ({urgency.value.upper()}) - OVERDUE {type_name(report_type).upper()} UPDATES",
        "=" * 60,
        f"MISSING UPDATES: {len(child_ids)}",
        f"DAYS OVERDUE: {days_overdue}",
        "",
        f"Update Period: {period_or_term}",
        f"Responsible Role: {responsible_role}",
        "",
        f"ACTION REQUIRED: Follow up with {responsible_role} to ensure these updates are submitted as soon as possible.",
        "",
        f"MISSING CHILDREN ({len(child_ids)}):",
        ", ".join(child_ids),
        "--",
        ORG_NAME,
    ]
    return "\n".join(lines)


def digest_subject(pending_count: int, overdue_count: int) -> str:
    return f"Admin Digest: {pending_count} pending, {overdue_count} overdue"


def _days_label(child: OverdueChild) -> str:
    return "Never" if child.days_since_update is None else f"{child.days_since_update} days"


def _overdue_row(child: OverdueChild) -> str:
    style = ' style="color: #dc2626;"' if child.days_since_update is None else ""
    return (
        f"<tr><td>{escape(child.child_first_name)}</td><td>{escape(child.child_id)}</td>"
        f"<td{style}>{_days_label(child)}</td></tr>"
    )


def digest_html(
    pending: List[UpdateSubmission],
    overdue: List[OverdueChild],
    total_active: int,
    threshold_days: int,
    generated_on: str,
) -> str:
    if pending:
        rows = "".join(
            f"<tr><td>{escape(u.update_key)}</td><td>{escape(u.status.value)}</td>"
            f"<td>{escape(u.submitted_by.value)}</td><td>{escape(u.submitted_at[:10])}</td></tr>"
            for u in pending[:HTML_LIST_LIMIT]
        )
        more = f"<p><em>... and {len(pending) - HTML_LIST_LIMIT} more</em></p>" if len(pending) > HTML_LIST_LIMIT else ""
        pending_section = f"""<h3>Pending Updates ({len(pending)})</h3>
  <table style="width: 100%; border-collapse: collapse;">
    <tr><th align="left">Update</th><th align="left">Status</th><th align="left">Submitted By</th><th align="left">Date</th></tr>
    {rows}
  </table>{more}"""
    else:
        pending_section = '<p style="color: #059669;">No pending updates to review.</p>'

    if overdue:
        rows = "".join(_overdue_row(c) for c in overdue[:DIGEST_OVERDUE_LIMIT])
        more = (
            f"<p><em>... and {len(overdue) - DIGEST_OVERDUE_LIMIT} more</em></p>"
            if len(overdue) > DIGEST_OVERDUE_LIMIT else ""
        )
        overdue_section = f"""<h3>Overdue Children ({len(overdue)})</h3>
  <p style="color: #6b7280;">Children without an update in more than {threshold_days} days</p>
  <table style="width: 100%; border-collapse: collapse;">
    <tr><th align="left">Child</th><th align="left">Child ID</th><th align="left">Last Update</th></tr>
    {rows}
  </table>{more}"""
    else:
        overdue_section = '<h3 style="color: #059669;">All children have recent updates!</h3>'

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="background-color: #1a1a1a; color: white; padding: 20px; text-align: center;">
    <h1>Admin Daily Digest</h1>
    <p>{escape(generated_on)}</p>
  </div>
  <p>
    <strong>Pending Updates:</strong> {len(pending)}<br>
    <strong>Overdue Children:</strong> {len(overdue)}<br>
    <strong>Active Children:</strong> {total_active}
  </p>
  {pending_section}
  {overdue_section}
  <p style="font-size: 12px; color: #666;">{ORG_NAME} | Admin Digest</p>
</body>
</html>
"""


def digest_text(
    pending: List[UpdateSubmission],
    overdue: List[OverdueChild],
    total_active: int,
    threshold_days: int,
    generated_on: str,
) -> str:
    lines = [
        f"ADMIN DAILY DIGEST - {generated_on}",
        "=" * 60,
        f"PENDING UPDATES: {len(pending)}",
        f"OVERDUE CHILDREN: {len(overdue)}",
        f"ACTIVE CHILDREN: {total_active}",
        "",
    ]
    if pending:
        lines.append(f"PENDING UPDATES ({len(pending)}):")
        lines.extend(f"- {u.update_key} ({u.status.value})" for u in pending[:TEXT_LIST_LIMIT])
        if len(pending) > TEXT_LIST_LIMIT:
            lines.append(f"... and {len(pending) - TEXT_LIST_LIMIT} more")
    else:
        lines.append("No pending updates to review.")
    lines.append("")
    if overdue:
        lines.append(f"OVERDUE CHILDREN (no update in more than {threshold_days} days):")
        lines.extend(f"- {c.child_id} {c.child_first_name}: {_days_label(c)}" for c in overdue[:DIGEST_OVERDUE_LIMIT])
        if len(overdue) > DIGEST_OVERDUE_LIMIT:
            lines.append(f"... and {len(overdue) - DIGEST_OVERDUE_LIMIT} more")
    else:
        lines.append("All children have recent updates!")
    lines.extend(["--", ORG_NAME])
    return "\n".join(lines)
