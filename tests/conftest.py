"""Shared fixtures for the caffeine test suite."""
import pytest

INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>site</title></head>
<body>
  <h1>hello</h1>
</body>
</html>
"""


@pytest.fixture
def site(tmp_path):
    """A frontend root with a sibling directory sharing its name as prefix."""
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (root / "style.css").write_text("body { color: red; }\n", encoding="utf-8")
    (root / "app.js").write_text("console.log('hi');\n", encoding="utf-8")
    (root / "pages").mkdir()
    (root / "pages" / "index.html").write_text("<p>no body tag</p>\n", encoding="utf-8")

    secret = tmp_path / "site-secret"
    secret.mkdir()
    (secret / "x").write_text("top secret", encoding="utf-8")
    (tmp_path / "passwd").write_text("root:x:0:0", encoding="utf-8")
    return root
