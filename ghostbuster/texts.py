import html
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml
from telegram.helpers import mention_html

from .models import ChatMember
from .policy import ChatPolicy, projected_removal

TEXTS_PATH = Path(__file__).parent / 'texts.yaml'

# Telegram caps a message at 4096 characters; keep headroom for markup
MESSAGE_CHUNK_LIMIT = 3500


class Texts:
    """User-facing message templates"""

    def __init__(self, path: Optional[Path] = None):
        with open(path or TEXTS_PATH, 'r', encoding='utf-8') as f:
            self.templates: Dict[str, str] = yaml.safe_load(f)

    def render(self, key: str, **kwargs) -> str:
        return self.templates[key].format(**kwargs)

    def mention(self, user_id: int, name: str) -> str:
        return mention_html(user_id, name)

    def warning(self, members: Sequence[ChatMember]) -> str:
        mentions = ', '.join(self.mention(m.user_id, m.display_name) for m in members)
        return self.render('warning', mentions=mentions)

    def member_name(self, member: ChatMember) -> str:
        if member.username:
            return f"@{html.escape(member.username)}"
        return self.mention(member.user_id, member.display_name)

    def preview(self, members: Sequence[ChatMember], policy: ChatPolicy) -> List[str]:
        """Preview lines split into messages under the chunk limit"""
        if not members:
            return [self.render('preview_empty')]

        header = self.render(
            'preview_header',
            window_days=policy.window_days,
            grace_days=policy.grace_days,
            total=len(members),
        )
        lines = []
        for member in members:
            if member.is_protected:
                status = self.render('preview_protected')
            else:
                removal = projected_removal(member, policy)
                status = format_date(removal) if removal else self.render('preview_no_data')
            lines.append(self.render('preview_line', name=self.member_name(member), status=status))

        return chunk_lines(header, lines)


def format_date(value: datetime) -> str:
    return value.strftime('%Y-%m-%d')


def chunk_lines(header: str, lines: Sequence[str], limit: int = MESSAGE_CHUNK_LIMIT) -> List[str]:
    chunks = []
    acc = header + "\n\n"
    for line in lines:
        if len(acc) + len(line) + 1 > limit and acc:
            chunks.append(acc)
            acc = ""
        acc += line + "\n"
    if acc:
        chunks.append(acc)
    return chunks
