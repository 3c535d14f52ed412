"""
Email content for recall alerts.

Renders a ContentSpec into subject, plain text and HTML. Rendering is pure:
the same ContentSpec always produces byte-identical output.
"""

from html import escape

from models.feed import FeedItem
from models.notification import ContentSpec, EmailContent
from shared.utils import parse_date_string

DISTRIBUTEUR_CHAR_LIMIT = 80
MOTIF_CHAR_LIMIT = 140
FEED_NAME = "RappelConso"


def truncate_text(value: str, limit: int) -> str:
    """Hard cap at limit characters, ellipsis included."""
    if len(value) <= limit:
        return value
    return value[: max(0, limit - 1)] + "…"


def _pluralize(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _build_sections(spec: ContentSpec) -> list[tuple[str, list[FeedItem]]]:
    """Ordered (heading, items) sections for a content spec."""
    if spec.kind == "new_only":
        return [("New items", spec.new_items)]

    sections = [("New items", spec.new_items), ("Latest items", spec.latest_items)]
    if spec.changed_items:
        sections.append(("Changed items", spec.changed_items))
    if spec.removed_items:
        sections.append(("Removed items", spec.removed_items))
    return sections


def _prepare_item(item: FeedItem) -> dict[str, str]:
    """Extract and format all display fields of an item once."""
    date_formatted = item.pub_date or item.pub_date_iso or ""
    parsed = parse_date_string(item.pub_date or item.pub_date_iso or "")
    if parsed:
        date_formatted = parsed.strftime("%B %d, %Y")

    if item.distributeurs_list:
        distributeur = ", ".join(item.distributeurs_list)
    else:
        distributeur = item.distributeurs_raw or ""

    return {
        "title": item.title or item.id or "Untitled",
        "link": item.link,
        "image_url": item.enclosure_url,
        "date_formatted": date_formatted,
        "distributeur": truncate_text(distributeur, DISTRIBUTEUR_CHAR_LIMIT),
        "motif": truncate_text(item.motif_raw or "", MOTIF_CHAR_LIMIT),
    }


def build_subject(spec: ContentSpec) -> str:
    if spec.kind == "new_only":
        return f"{FEED_NAME} alert: {_pluralize(len(spec.new_items), 'new item')}"
    return f"{FEED_NAME} alert: {_pluralize(len(spec.items), 'latest item')}"


def _intro(spec: ContentSpec) -> str:
    if spec.kind == "new_only":
        return "New recall notices published since the last check."
    return "Latest recall notices, new ones listed first."


def build_text(spec: ContentSpec) -> str:
    """
    Build plain text email body.

    Each section lists "- title (link)" per item, or "- none" when empty.
    """
    lines = [f"{FEED_NAME.upper()} RECALL ALERT", _intro(spec), ""]

    for heading, items in _build_sections(spec):
        lines.append(f"{heading} ({len(items)}):")
        if items:
            for item in items:
                lines.append(f"- {item.title or item.id} ({item.link or 'no link'})")
        else:
            lines.append("- none")
        lines.append("")

    lines.append("---")
    lines.append(f"Source: {FEED_NAME} public recall feed")
    return "\n".join(lines) + "\n"


def _build_item_card(prepared: dict[str, str]) -> str:
    title = escape(prepared["title"])

    if prepared["image_url"]:
        image_block = (
            f'<img class="item-image" src="{escape(prepared["image_url"])}" alt="{title}">'
        )
    else:
        image_block = '<div class="no-image">No image</div>'

    html = f"""
        <div class="item">
            {image_block}
            <h3 class="item-title">{title}</h3>
"""
    if prepared["date_formatted"]:
        html += f"""
            <div class="item-meta">{escape(prepared["date_formatted"])}</div>
"""
    if prepared["motif"]:
        html += f"""
            <div class="item-motif">{escape(prepared["motif"])}</div>
"""
    if prepared["distributeur"] or prepared["link"]:
        html += """
            <div class="item-actions">
"""
        if prepared["distributeur"]:
            html += f"""
                <span class="distributeur">{escape(prepared["distributeur"])}</span>
"""
        if prepared["link"]:
            html += f"""
                <a href="{escape(prepared["link"])}" class="open-link">View recall notice →</a>
"""
        html += """
            </div>
"""
    html += """
        </div>
"""
    return html


def build_html(spec: ContentSpec) -> str:
    """Build HTML email body with one card per item, grouped by section."""
    html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{FEED_NAME} recall alert</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.5;
            color: #0f172a;
            max-width: 640px;
            margin: 0 auto;
            padding: 24px 12px;
            background-color: #f8fafc;
        }}
        .container {{
            background-color: #ffffff;
            padding: 24px;
            border-radius: 16px;
            border: 1px solid #e2e8f0;
        }}
        h1 {{
            margin: 0 0 8px 0;
            font-size: 22px;
        }}
        .intro {{
            color: #475569;
            font-size: 14px;
            margin: 0 0 16px 0;
        }}
        .section-title {{
            margin: 24px 0 8px 0;
            font-size: 18px;
            font-weight: 600;
        }}
        .empty {{
            color: #64748b;
            font-size: 14px;
            margin: 0 0 16px 0;
        }}
        .item {{
            border: 1px solid #e2e8f0;
            border-radius: 12px;
            padding: 16px;
            margin: 0 0 16px 0;
        }}
        .item-image {{
            display: block;
            width: 100%;
            height: auto;
            border-radius: 10px;
            margin: 0 0 12px 0;
        }}
        .no-image {{
            padding: 24px;
            background-color: #f1f5f9;
            border-radius: 10px;
            text-align: center;
            color: #64748b;
            font-size: 13px;
            margin: 0 0 12px 0;
        }}
        .item-title {{
            font-size: 16px;
            font-weight: 600;
            margin: 0 0 6px 0;
        }}
        .item-meta {{
            font-size: 12px;
            color: #64748b;
            margin: 0 0 8px 0;
        }}
        .item-motif {{
            font-size: 13px;
            color: #475569;
            margin: 0 0 12px 0;
        }}
        .distributeur, .open-link {{
            display: inline-block;
            padding: 8px 12px;
            background-color: #0f172a;
            color: #ffffff;
            border-radius: 8px;
            font-size: 13px;
            text-decoration: none;
            margin: 0 8px 8px 0;
        }}
        .footer {{
            margin-top: 24px;
            color: #94a3b8;
            font-size: 12px;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{FEED_NAME} recall alert</h1>
        <p class="intro">{escape(_intro(spec))}</p>
"""

    for heading, items in _build_sections(spec):
        html += f"""
        <div class="section-title">{escape(heading)} ({len(items)})</div>
"""
        if not items:
            html += """
        <div class="empty">- none</div>
"""
        for item in items:
            html += _build_item_card(_prepare_item(item))

    html += f"""
        <div class="footer">
            Source: {FEED_NAME} public recall feed.
        </div>
    </div>
</body>
</html>
"""
    return html


def build_email_content(spec: ContentSpec) -> EmailContent:
    """Render subject, text and HTML for a recipient's content spec."""
    return EmailContent(
        subject=build_subject(spec),
        text=build_text(spec),
        html=build_html(spec),
    )
