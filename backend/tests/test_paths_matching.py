from bundle_intake.utils.file_safety import is_within_directory
from bundle_intake.utils.paths import normalize_path, normalize_paths, normalize_string_for_path
from bundle_intake.utils.matching import (
    EntryMatcher,
    is_directory_marker,
    matches_path_filters,
)

def test_normalize_path_replaces_backslashes_and_lowercases():
    assert normalize_path("Docs\\Sub\\README.md") == "docs/sub/readme.md"

def test_normalize_path_case_sensitive_keeps_case():
    assert normalize_path("Docs\\README.md", case_sensitive=True) == "Docs/README.md"

def test_normalize_paths_none_is_empty():
    assert normalize_paths(None) == []
    assert normalize_paths(["A\\B", "c"]) == ["a/b", "c"]

def test_normalize_string_for_path():
    assert normalize_string_for_path("C:\\Users/jane doe") == "C__Users_jane_doe"

def test_directory_marker():
    assert is_directory_marker("docs/")
    assert not is_directory_marker("docs/readme.md")

def test_empty_filters_match_everything():
    assert matches_path_filters("anything/at/all.txt", [])

def test_filter_fragment_of_entry():
    assert matches_path_filters("docs/readme.md", ["readme"])

def test_entry_fragment_of_filter():
    # A full path filter also selects the directories leading to it
    assert matches_path_filters("docs/", ["docs/readme.md"])

def test_no_match():
    assert not matches_path_filters("src/app.py", ["docs", "readme"])

def test_entry_matcher_path_and_extension():
    matcher = EntryMatcher(["config"], ".json")
    assert matcher.matches_path("config/app.json")
    assert matcher.matches_extension("config/app.json")
    assert not matcher.matches_extension("config/app.yaml")
    assert not matcher.matches_path("other/app.json")

def test_entry_matcher_without_filters():
    matcher = EntryMatcher()
    assert matcher.matches_path("a/b/c.bin")
    assert matcher.matches_extension("a/b/c.bin")

def test_is_within_directory_strict_excludes_root():
    assert is_within_directory("/srv/out", "/srv/out")
    assert not is_within_directory("/srv/out", "/srv/out", strict=True)
    assert is_within_directory("/srv/out", "/srv/out/a.txt", strict=True)
    assert not is_within_directory("/srv/out", "/srv/outside/a.txt")
