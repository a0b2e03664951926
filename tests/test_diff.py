"""Tests for diff proposal resolution."""

import json
import os

import pytest

from session_rewind.diff import DiffResolver


@pytest.fixture
def diff_root(tmp_path):
    root = tmp_path / "diff"
    root.mkdir()
    return root


@pytest.fixture
def proposal(diff_root):
    path = diff_root / "proposal-1"
    path.mkdir()
    (path / "meta.json").write_text(json.dumps({"filePath": "/work/app/main.py"}), encoding="utf-8")
    return path


@pytest.fixture
def resolver(diff_root):
    return DiffResolver(diff_root)


def _snapshot(path):
    return sorted(str(p.relative_to(path)) for p in path.rglob("*"))


class TestApproveReject:

    @pytest.mark.asyncio
    async def test_approve_writes_content_and_response(self, resolver, proposal):
        result = await resolver.resolve(str(proposal), "approve", "print('hi')\n")

        assert result.success is True
        assert (proposal / "new.py").read_text(encoding="utf-8") == "print('hi')\n"
        assert json.loads((proposal / "response.json").read_text()) == {"status": "approve"}

    @pytest.mark.asyncio
    async def test_approve_without_content_writes_empty(self, resolver, proposal):
        result = await resolver.resolve(str(proposal), "approve")
        assert result.success is True
        assert (proposal / "new.py").read_text(encoding="utf-8") == ""

    @pytest.mark.asyncio
    async def test_reject_writes_only_response(self, resolver, proposal):
        result = await resolver.resolve(str(proposal), "reject", "ignored")

        assert result.success is True
        assert not (proposal / "new.py").exists()
        assert json.loads((proposal / "response.json").read_text()) == {"status": "reject"}

    @pytest.mark.asyncio
    async def test_missing_meta_fails(self, resolver, diff_root):
        empty = diff_root / "empty"
        empty.mkdir()
        result = await resolver.resolve(str(empty), "approve", "x")

        assert result.success is False
        assert result.error
        assert list(empty.iterdir()) == []

    @pytest.mark.asyncio
    async def test_meta_without_file_path_fails(self, resolver, proposal):
        (proposal / "meta.json").write_text("{}", encoding="utf-8")
        result = await resolver.resolve(str(proposal), "reject")
        assert result.success is False
        assert not (proposal / "response.json").exists()

    @pytest.mark.asyncio
    async def test_failed_approve_write_skips_response(self, resolver, proposal):
        (proposal / "new.py").mkdir()  # writing the new content will fail
        result = await resolver.resolve(str(proposal), "approve", "x")

        assert result.success is False
        assert not (proposal / "response.json").exists()


class TestPathSecurity:

    @pytest.mark.asyncio
    async def test_dotdot_traversal_rejected(self, resolver, diff_root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "meta.json").write_text(json.dumps({"filePath": "x.py"}), encoding="utf-8")
        before = _snapshot(tmp_path)

        result = await resolver.resolve(str(diff_root / ".." / "outside"), "approve", "pwned")

        assert result.success is False
        assert result.error == "Invalid diff path"
        assert _snapshot(tmp_path) == before

    @pytest.mark.asyncio
    async def test_absolute_path_outside_rejected(self, resolver, tmp_path):
        before = _snapshot(tmp_path)
        result = await resolver.resolve(str(tmp_path), "reject")
        assert result.error == "Invalid diff path"
        assert _snapshot(tmp_path) == before

    @pytest.mark.asyncio
    async def test_sibling_prefix_rejected(self, resolver, tmp_path):
        sibling = tmp_path / "diff-evil"
        sibling.mkdir()
        result = await resolver.resolve(str(sibling), "reject")
        assert result.error == "Invalid diff path"
        assert list(sibling.iterdir()) == []

    @pytest.mark.asyncio
    async def test_nul_byte_rejected(self, resolver, diff_root):
        result = await resolver.resolve(str(diff_root) + "/x\x00y", "reject")
        assert result.success is False
        assert result.error == "Invalid diff path"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    @pytest.mark.asyncio
    async def test_symlink_escape_rejected(self, resolver, diff_root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "meta.json").write_text(json.dumps({"filePath": "x.py"}), encoding="utf-8")
        try:
            (diff_root / "link").symlink_to(outside, target_is_directory=True)
        except OSError:
            pytest.skip("cannot create symlinks")

        result = await resolver.resolve(str(diff_root / "link"), "approve", "pwned")

        assert result.error == "Invalid diff path"
        assert not (outside / "new.py").exists()
        assert not (outside / "response.json").exists()

    @pytest.mark.asyncio
    async def test_nested_inside_root_allowed(self, resolver, proposal):
        result = await resolver.resolve(str(proposal / "." / ".." / proposal.name), "reject")
        assert result.success is True


class TestPayload:

    @pytest.mark.asyncio
    async def test_valid_payload(self, resolver, proposal):
        result = await resolver.resolve_payload(
            {"diffPath": str(proposal), "status": "approve", "content": "x = 1\n"}
        )
        assert result.success is True
        assert (proposal / "new.py").read_text(encoding="utf-8") == "x = 1\n"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {},
        {"diffPath": "", "status": "approve"},
        {"diffPath": "/x"},
        {"diffPath": 3, "status": "approve"},
        "not a dict",
    ])
    async def test_invalid_payload(self, resolver, payload):
        result = await resolver.resolve_payload(payload)
        assert result.success is False
        assert result.error == "Invalid payload"
        assert result.to_dict() == {"success": False, "error": "Invalid payload"}
