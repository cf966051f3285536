"""
Converter Module - Delta to HTML rendering and plain-text extraction

Stored blog content and project descriptions are either delta documents or
legacy strings. Rendering never raises: a document that cannot be converted
falls back to the raw rendering of the original string.
"""

import html
import logging
import math
import re
from urllib.parse import urlparse

from markupsafe import Markup, escape

from .delta import Delta, DeltaContent, RawContent, parse_content

logger = logging.getLogger(__name__)

ELLIPSIS = '…'
SAFE_URL_SCHEMES = ('http', 'https')
LINK_TARGET = '_blank'
LINK_REL = 'noopener noreferrer'
WORDS_PER_MINUTE = 200

HTML_MARKER_RE = re.compile(r'</?[a-zA-Z][a-zA-Z0-9]*(\s[^<>]*)?/?>')
TAG_RE = re.compile(r'<[^>]*>')
DATA_IMAGE_RE = re.compile(r'^data:image/(png|jpe?g|gif|webp);base64,[A-Za-z0-9+/=]+\Z')

# Order matters: earlier entries end up innermost
INLINE_TAGS = (
    ('code', 'code'),
    ('bold', 'strong'),
    ('italic', 'em'),
    ('strike', 's'),
    ('underline', 'u'),
)

LIST_TAGS = {
    'bullet': 'ul',
    'ordered': 'ol',
    'checked': 'ul',
    'unchecked': 'ul',
}


def is_safe_url(url):
    """Only absolute http(s) URLs may become link targets or image sources"""
    if not isinstance(url, str):
        return False
    candidate = url.strip()
    if not candidate or any(ord(ch) < 32 for ch in candidate):
        return False
    parsed = urlparse(candidate)
    return parsed.scheme.lower() in SAFE_URL_SCHEMES and bool(parsed.netloc)


def _render_inline(op):
    if not op.is_text:
        return _render_embed(op.insert)

    text = str(escape(op.insert))
    attrs = op.attributes
    for attr, tag in INLINE_TAGS:
        if attrs.get(attr):
            text = f'<{tag}>{text}</{tag}>'

    script = attrs.get('script')
    if script == 'sub':
        text = f'<sub>{text}</sub>'
    elif script == 'super':
        text = f'<sup>{text}</sup>'

    link = attrs.get('link')
    if link:
        if is_safe_url(link):
            href = escape(link.strip())
            text = f'<a href="{href}" target="{LINK_TARGET}" rel="{LINK_REL}">{text}</a>'
        else:
            logger.warning(f"Dropped link with unsafe target: {link!r}")
    return text


def is_safe_image_src(src):
    """Image sources: http(s) URLs or inline base64 raster images"""
    if is_safe_url(src):
        return True
    return isinstance(src, str) and bool(DATA_IMAGE_RE.match(src.strip()))


def _render_embed(embed):
    image = embed.get('image')
    if image is not None:
        if is_safe_image_src(image):
            return f'<img src="{escape(image.strip())}" alt="" />'
        logger.warning(f"Dropped image embed with unsafe source: {image!r}")
        return ''
    logger.debug(f"Skipping unsupported embed: {sorted(embed)}")
    return ''


def _iter_lines(delta):
    """Yield (inline_html, block_attributes) per newline-terminated line"""
    fragments = []
    for op in delta.ops:
        if not op.is_text:
            fragments.append(_render_inline(op))
            continue
        pieces = op.insert.split('\n')
        for index, piece in enumerate(pieces):
            if piece:
                fragments.append(_render_inline(_with_text(op, piece)))
            if index < len(pieces) - 1:
                yield ''.join(fragments), op.attributes
                fragments = []
    if fragments:
        yield ''.join(fragments), {}


def _with_text(op, text):
    if text == op.insert:
        return op
    return type(op)(insert=text, attributes=op.attributes)


def _header_level(value):
    try:
        level = int(value)
    except (TypeError, ValueError):
        return None
    return level if 1 <= level <= 6 else None


def delta_to_html(delta: Delta) -> str:
    """Render a delta document as one HTML string"""
    blocks = []
    open_list = None
    code_lines = []

    def close_list():
        nonlocal open_list
        if open_list:
            blocks.append(f'</{LIST_TAGS[open_list]}>')
            open_list = None

    def close_code():
        if code_lines:
            blocks.append('<pre>' + '\n'.join(code_lines) + '</pre>')
            code_lines.clear()

    for inline, attrs in _iter_lines(delta):
        list_type = attrs.get('list')
        if list_type not in LIST_TAGS:
            list_type = None

        if not attrs.get('code-block'):
            close_code()
        if open_list and (list_type is None or LIST_TAGS[list_type] != LIST_TAGS[open_list]):
            close_list()

        if attrs.get('code-block'):
            close_list()
            code_lines.append(inline)
            continue

        if list_type:
            if open_list is None:
                blocks.append(f'<{LIST_TAGS[list_type]}>')
                open_list = list_type
            if list_type in ('checked', 'unchecked'):
                checked = 'true' if list_type == 'checked' else 'false'
                blocks.append(f'<li data-checked="{checked}">{inline or "<br/>"}</li>')
            else:
                blocks.append(f'<li>{inline or "<br/>"}</li>')
            continue

        level = _header_level(attrs.get('header'))
        if level:
            blocks.append(f'<h{level}>{inline or "<br/>"}</h{level}>')
        elif attrs.get('blockquote'):
            blocks.append(f'<blockquote>{inline or "<br/>"}</blockquote>')
        else:
            blocks.append(f'<p>{inline or "<br/>"}</p>')

    close_code()
    close_list()
    return ''.join(blocks)


def raw_to_html(text: str) -> str:
    """Legacy content: HTML passes through, plain text becomes paragraphs"""
    if not text:
        return ''
    if HTML_MARKER_RE.search(text):
        return text
    lines = text.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    return ''.join(f'<p>{escape(line)}</p>' for line in lines if line.strip())


def render_html(content, original=None) -> str:
    """Render an already resolved content variant.

    ``original`` is the stored string the variant came from; it is what gets
    rendered raw if delta conversion fails.
    """
    if isinstance(content, DeltaContent):
        try:
            return delta_to_html(content.delta)
        except Exception as e:
            logger.warning(f"Failed to convert delta to HTML, rendering raw content: {e}")
            return raw_to_html(original if original is not None else content.delta.dumps())
    return raw_to_html(content.text)


def content_to_html(raw) -> str:
    """Convert a stored content string to HTML without ever raising"""
    try:
        content = parse_content(raw)
        if isinstance(content, DeltaContent):
            return delta_to_html(content.delta)
        return raw_to_html(content.text)
    except Exception as e:
        logger.warning(f"Failed to render stored content, falling back to raw: {e}")
        return raw if isinstance(raw, str) else ''


def resolve_content(raw):
    """Tagged variant for a stored value; anything unreadable is raw content"""
    try:
        return parse_content(raw)
    except Exception as e:
        logger.warning(f"Failed to resolve stored content, treating it as raw: {e}")
        return RawContent(raw if isinstance(raw, str) else '')


def content_markup(raw):
    """Jinja filter: stored content as safe markup"""
    return Markup(content_to_html(raw))


def extract_text(content) -> str:
    if isinstance(content, DeltaContent):
        return content.delta.plain_text()
    if isinstance(content, RawContent):
        text = content.text
        if HTML_MARKER_RE.search(text):
            text = html.unescape(TAG_RE.sub(' ', text))
        return text
    return extract_text(parse_content(content))


def plain_text(raw, limit=None) -> str:
    """Literal text of stored content, truncated to ``limit`` characters.

    The ellipsis marker is appended only when text was cut off.
    """
    try:
        text = extract_text(raw)
    except Exception as e:
        logger.warning(f"Failed to extract text from content: {e}")
        text = raw if isinstance(raw, str) else ''
    if limit is not None and len(text) > limit:
        return text[:limit].rstrip() + ELLIPSIS
    return text


def count_words(text) -> int:
    """Whitespace-separated tokens of literal text"""
    if not text:
        return 0
    return len(text.split())


def word_count(text) -> int:
    """Words of a legacy string, with HTML markup removed first"""
    if text and HTML_MARKER_RE.search(text):
        text = html.unescape(TAG_RE.sub(' ', text))
    return count_words(text)


def reading_time(words) -> int:
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


__all__ = [
    'ELLIPSIS',
    'content_markup',
    'content_to_html',
    'count_words',
    'delta_to_html',
    'extract_text',
    'is_safe_image_src',
    'is_safe_url',
    'plain_text',
    'raw_to_html',
    'reading_time',
    'render_html',
    'resolve_content',
    'word_count',
]
