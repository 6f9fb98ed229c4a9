from __future__ import annotations

import pytest

from resumerank.core.validators import InputValidator
from resumerank.services.storage import LocalResumeStorage, build_resume_key, resume_content_type

pytestmark = pytest.mark.unit


def test_resume_key_is_namespaced_and_safe():
    key = build_resume_key("job-1", "../../etc/My CV (final).pdf")

    assert key.startswith("resumes/job-1/")
    assert key.endswith("_My_CV__final_.pdf")
    assert ".." not in key


@pytest.mark.parametrize(
    "name, expected",
    [
        ("cv.PDF", "application/pdf"),
        ("cv.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("cv.doc", None),
        ("cv", None),
    ],
)
def test_resume_content_types(name, expected):
    assert resume_content_type(name) == expected


async def test_local_storage_round_trip(tmp_path):
    storage = LocalResumeStorage(str(tmp_path))

    await storage.save("resumes/j1/a.pdf", b"data")
    assert await storage.read("resumes/j1/a.pdf") == b"data"

    result = await storage.remove_resumes(["resumes/j1/a.pdf", None, "resumes/j1/missing.pdf"])
    assert result.ok
    assert result.removed == ["resumes/j1/a.pdf", "resumes/j1/missing.pdf"]
    assert not (tmp_path / "resumes" / "j1" / "a.pdf").exists()


async def test_local_storage_refuses_paths_outside_its_root(tmp_path):
    storage = LocalResumeStorage(str(tmp_path / "root"))

    with pytest.raises(ValueError):
        await storage.save("../escape.pdf", b"data")

    result = await storage.remove_resumes(["../escape.pdf"])
    assert not result.ok
    assert "../escape.pdf" in result.failed


def test_sanitize_string_strips_markup():
    assert InputValidator.sanitize_string("  <b>Hello</b>\n\tworld  ") == "Hello world"


def test_sanitize_string_stores_plain_text():
    once = InputValidator.sanitize_string("R&D <i>lead</i>, salary > 100k")

    assert once == "R&D lead, salary > 100k"
    assert InputValidator.sanitize_string(once) == once
