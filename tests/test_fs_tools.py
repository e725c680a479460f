import json
import os

import pytest

from dream2design.run_utils.errors import JobNotFoundError, ProjectFileNotFound
from dream2design.run_utils.fs_tools import MANIFEST, PREVIEW_HTML, is_safe_job_id, safe_relpath


def test_safe_relpath():
    assert safe_relpath("frontend/app.js") == "frontend/app.js"
    assert safe_relpath("./frontend//app.js") == "frontend/app.js"
    assert safe_relpath("frontend\\app.js") == "frontend/app.js"
    assert safe_relpath("a/../b.js") == "b.js"
    assert safe_relpath("../b.js") is None
    assert safe_relpath("/abs.js") is None
    assert safe_relpath("   ") is None
    assert safe_relpath(None) is None


def test_write_files_creates_parents(projects):
    projects.ensure_job_dir("j1")
    written = projects.write_files("j1", {"frontend/js/app.js": "1;", "index.html": "<p/>"})
    assert written == ["frontend/js/app.js", "index.html"]
    assert projects.read_file("j1", "frontend/js/app.js") == "1;"


def test_list_files_excludes_manifest_and_preview(projects):
    projects.ensure_job_dir("j1")
    projects.write_files("j1", {"b.css": "b", "a/x.js": "x"})
    projects.write_preview("j1", "<html></html>")
    projects.build_manifest("j1")
    assert projects.list_files("j1") == ["a/x.js", "b.css"]
    assert projects.list_files("j1") == projects.list_files("j1")


def test_list_files_unknown_job(projects):
    with pytest.raises(JobNotFoundError):
        projects.list_files("missing")


def test_list_files_sees_changes_made_outside(projects):
    projects.ensure_job_dir("j1")
    projects.write_files("j1", {"a.js": "1"})
    with open(os.path.join(projects.job_dir("j1"), "late.css"), "w") as f:
        f.write("x")
    assert projects.list_files("j1") == ["a.js", "late.css"]


def test_manifest_written_and_cross_checked(projects):
    projects.ensure_job_dir("j1")
    projects.write_files("j1", {"a.js": "1", "b.css": "2"})
    projects.write_preview("j1", "<html/>")
    assert projects.build_manifest("j1") == ["a.js", "b.css"]

    with open(os.path.join(projects.job_dir("j1"), MANIFEST)) as f:
        assert json.load(f) == {"files": ["a.js", "b.css"]}

    os.remove(os.path.join(projects.job_dir("j1"), "b.css"))
    assert projects.load_manifest("j1") == ["a.js"]


def test_load_manifest_falls_back_to_walk(projects):
    projects.ensure_job_dir("j1")
    projects.write_files("j1", {"a.js": "1"})
    assert projects.load_manifest("j1") == ["a.js"]

    with open(os.path.join(projects.job_dir("j1"), MANIFEST), "w") as f:
        f.write("{broken")
    assert projects.load_manifest("j1") == ["a.js"]


def test_preview_last_write_wins(projects):
    projects.write_preview("j1", "first")
    projects.write_preview("j1", "second")
    assert projects.read_preview("j1") == b"second"
    assert sorted(os.listdir(projects.job_dir("j1"))) == [PREVIEW_HTML]


def test_read_missing_file(projects):
    projects.ensure_job_dir("j1")
    with pytest.raises(ProjectFileNotFound):
        projects.read_file("j1", "nope.js")
    with pytest.raises(ProjectFileNotFound):
        projects.read_file("j1", "../../etc/passwd")


def test_build_tree(projects):
    projects.ensure_job_dir("j1")
    projects.write_files("j1", {"frontend/index.html": "", "frontend/js/app.js": "", "README.md": ""})
    projects.write_preview("j1", "<html/>")
    projects.build_manifest("j1")
    assert projects.build_tree("j1") == {
        "README.md": "file",
        "frontend": {"index.html": "file", "js": {"app.js": "file"}},
    }


def test_job_dir_rejects_non_segment_ids(projects):
    assert projects.job_dir("0123abcd0123abcd").endswith("0123abcd0123abcd")
    for bad in ("..", ".", "a/b", "a\\b", "", None):
        assert not is_safe_job_id(bad)
        with pytest.raises(JobNotFoundError):
            projects.job_dir(bad)
