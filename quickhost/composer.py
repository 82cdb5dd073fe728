"""Site preview composer.

Assembles a site's stored files into one self-contained HTML document.
Every function here is pure: same input, same output, never raises.
The composed document is meant to be rendered in isolation, either inside
an ``<iframe sandbox srcdoc>`` (see ``embed_document``) or served with the
``Content-Security-Policy`` header from ``CSP_HEADER``.
"""

import html
from typing import Any, Mapping

DEFAULT_TITLE = "Hosted Site"

INDEX_FILE = "index.html"
STYLESHEET_FILE = "styles.css"
SCRIPT_FILE = "script.js"

# No allow-same-origin and no top-navigation: site scripts run in an opaque origin
SANDBOX_TOKENS = "allow-scripts allow-forms allow-popups"
CSP_HEADER = f"sandbox {SANDBOX_TOKENS}"

_MESSAGE_STYLE = (
    "font-family: sans-serif; color: #333; text-align: center; "
    "padding-top: 2rem; margin: 0;"
)

LOADING_DOCUMENT = (
    '<html><body style="font-family: sans-serif; color: #333; display: flex; '
    'justify-content: center; align-items: center; height: 100vh; margin: 0;">'
    "<p>Initializing preview...</p></body></html>"
)

EMPTY_SITE_DOCUMENT = (
    f'<html><body style="{_MESSAGE_STYLE}">'
    "<p>Site content is not available or is empty.</p></body></html>"
)

MISSING_INDEX_DOCUMENT = (
    f'<html><body style="{_MESSAGE_STYLE}"><h1>Preview Error</h1>'
    "<p><strong>index.html</strong> not found for this site.</p>"
    "<p>Please ensure an index.html file exists in your site files.</p>"
    "</body></html>"
)

NOT_FOUND_DOCUMENT = (
    f'<html><body style="{_MESSAGE_STYLE}"><h1>Site Not Found</h1>'
    "<p>No site is published at this address.</p>"
    "<p>Please check the link and try again.</p></body></html>"
)

_SITE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style type="text/css">
{css}
    </style>
</head>
<body>
{markup}
    <script type="text/javascript">
{js}
    </script>
</body>
</html>
"""

_EMBED_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>html, body {{ margin: 0; height: 100%; }} iframe {{ border: 0; width: 100%; height: 100%; }}</style>
</head>
<body>
    <iframe title="{title}" sandbox="{sandbox}" srcdoc="{srcdoc}"></iframe>
</body>
</html>
"""


def escape_html(value: str) -> str:
    """Escape & < > " ' for use in text or attribute values."""
    return html.escape(value, quote=True)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _title(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    return DEFAULT_TITLE


def compose_site_document(title: Any, files: Any) -> str:
    """Compose a site's files into a single HTML document.

    ``files`` maps file names to contents. The markup of ``index.html`` is
    placed verbatim in the body, ``styles.css`` is inlined in the head and
    ``script.js`` at the end of the body. Only the title is escaped.
    """
    if not isinstance(files, Mapping) or not files:
        return EMPTY_SITE_DOCUMENT
    if INDEX_FILE not in files:
        return MISSING_INDEX_DOCUMENT

    return _SITE_TEMPLATE.format(
        title=escape_html(_title(title)),
        css=_text(files.get(STYLESHEET_FILE)),
        markup=_text(files.get(INDEX_FILE)),
        js=_text(files.get(SCRIPT_FILE)),
    )


def error_document(message: Any) -> str:
    """Document shown when the site could not be fetched."""
    text = _text(message) or "Failed to load site data."
    return (
        f'<html><body style="{_MESSAGE_STYLE}"><h1>Error Loading Site</h1>'
        f"<p>{escape_html(text)}</p>"
        "<p>Please check the URL or try again later.</p></body></html>"
    )


def not_found_document() -> str:
    return NOT_FOUND_DOCUMENT


def embed_document(document: Any, title: Any = None) -> str:
    """Wrap a composed document in a sandboxed iframe page."""
    return _EMBED_TEMPLATE.format(
        title=escape_html(_title(title)),
        sandbox=SANDBOX_TOKENS,
        srcdoc=escape_html(_text(document)),
    )
