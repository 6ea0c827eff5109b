# ABOUTME: Description sanitizer that strips inline HTML from feed text.
# ABOUTME: Keeps the text content and word spacing; block elements become line breaks.

from bs4 import BeautifulSoup

BLOCK_TAGS = [
    "p",
    "div",
    "li",
    "ul",
    "ol",
    "blockquote",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "pre",
    "tr",
    "table",
]


def sanitize_text(text: str | None) -> str | None:
    """Strip markup from descriptive text.

    "Intro <b>bold</b> end" becomes "Intro bold end". Entities are decoded,
    runs of whitespace collapse to one space, and paragraph-like elements are
    kept apart on separate lines. Returns None when nothing is left.
    """
    if not text:
        return None

    soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    lines = (" ".join(line.split()) for line in soup.get_text().splitlines())
    cleaned = "\n".join(line for line in lines if line)
    return cleaned or None
