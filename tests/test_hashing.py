"""Tests for project hashing."""

import os

from session_rewind.hashing import canonicalize_path, project_hash


class TestProjectHash:

    def test_is_sha256_hex(self):
        digest = project_hash("/Users/testuser/dev/myapp")
        assert len(digest) == 64
        int(digest, 16)

    def test_deterministic(self):
        assert project_hash("/srv/app") == project_hash("/srv/app")

    def test_different_paths_differ(self):
        assert project_hash("/srv/app") != project_hash("/srv/other")

    def test_trailing_separator_ignored(self):
        assert project_hash("/srv/app/") == project_hash("/srv/app")

    def test_dot_segments_normalized(self):
        assert project_hash("/srv/x/../app/./") == project_hash("/srv/app")

    def test_relative_path_resolves_against_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert project_hash("sub") == project_hash(os.path.join(os.getcwd(), "sub"))

    def test_matches_hash_of_canonical_form(self):
        path = "/srv/App/../App/"
        assert project_hash(path) == project_hash(canonicalize_path(path))

    def test_case_follows_host(self):
        same_on_host = os.path.normcase("/Srv/App") == os.path.normcase("/srv/app")
        assert (project_hash("/Srv/App") == project_hash("/srv/app")) is same_on_host
