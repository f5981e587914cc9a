"""Markup builders and constants shared by the test modules."""

API_KEY = "test-key"


def links(n: int, sections: int = 10) -> str:
    """Same wording for every n, so only the internal link count changes."""
    body = [f'<p>Section <a href="/p{i}">link</a></p>' for i in range(n)]
    body += ["<p>Section link</p>"] * (sections - n)
    return "<h1>Guide</h1>" + "".join(body)


def words(n: int) -> str:
    return "<h1>Title</h1><p>" + " ".join(["word"] * n) + "</p>"
