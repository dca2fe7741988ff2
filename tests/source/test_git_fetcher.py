"""Tests for the shallow git fetcher against a scripted command runner."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from fakes import COMMIT, FakeRunner, RecordingObserver
from packverify.exceptions import FetchError
from packverify.source.git import FETCH_HEAD, ShallowFetcher, tag_refs

REPO = "https://example.com/example.git"


def _fetcher(runner: FakeRunner, observer: RecordingObserver | None = None) -> ShallowFetcher:
    return ShallowFetcher(
        lambda argv, cwd: runner.run(argv, cwd), git="git", observer=observer
    )


def _fetch(ref: str) -> list[str]:
    return ["git", "fetch", "--depth", "1", "origin", ref]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


class TestTagRefs:
    def test_order(self) -> None:
        assert tag_refs("1.2.3") == ["tags/v1.2.3", "tags/1.2.3"]


class TestCommitCheckout:
    def test_fetches_exact_commit(self, runner: FakeRunner, tmp_path: Path) -> None:
        checkout = asyncio.run(
            _fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT, version="1.0.0")
        )
        assert checkout.resolved_ref == COMMIT
        assert checkout.working_directory == tmp_path
        assert runner.commands() == [
            "git init",
            f"git remote add origin {REPO}",
            f"git fetch --depth 1 origin {COMMIT}",
            f"git checkout {FETCH_HEAD}",
        ]

    def test_every_command_runs_in_checkout_directory(
        self, runner: FakeRunner, tmp_path: Path
    ) -> None:
        asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT))
        assert set(runner.directories("git")) == {tmp_path}

    def test_commit_unavailable_without_version(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(_fetch(COMMIT))
        with pytest.raises(FetchError, match=r"Unable to fetch commit from remote \(0123456\)"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT))


class TestTagFallback:
    """No commit, or an unfetchable one, falls back to release tags."""

    def test_commit_missing_v_tag_present(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(_fetch(COMMIT))
        observer = RecordingObserver()
        checkout = asyncio.run(
            _fetcher(runner, observer).checkout(REPO, tmp_path, commit=COMMIT, version="1.0.0")
        )
        assert checkout.resolved_ref == "tags/v1.0.0"
        assert any("falling back to version tags" in w for w in observer.messages("warning"))
        assert "git checkout FETCH_HEAD" in runner.commands()

    def test_plain_tag_after_v_tag(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(_fetch("tags/v1.0.0"))
        checkout = asyncio.run(
            _fetcher(runner).checkout(REPO, tmp_path, version="1.0.0")
        )
        assert checkout.resolved_ref == "tags/1.0.0"

    def test_no_commit_goes_straight_to_tags(self, runner: FakeRunner, tmp_path: Path) -> None:
        asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, version="1.0.0"))
        fetches = [c for c in runner.commands() if c.startswith("git fetch")]
        assert fetches == ["git fetch --depth 1 origin tags/v1.0.0"]

    def test_everything_missing(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "fetch"])
        with pytest.raises(FetchError) as excinfo:
            asyncio.run(
                _fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT, version="1.0.0")
            )
        assert str(excinfo.value) == (
            "Unable to fetch commit (0123456) or tag (tags/v1.0.0 or tags/1.0.0) from remote"
        )
        assert "git checkout FETCH_HEAD" not in runner.commands()

    def test_tags_missing_without_commit(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "fetch"])
        with pytest.raises(FetchError, match=r"Unable to fetch tag from remote \(tags/v2 or tags/2\)"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, version="2"))

    def test_nothing_to_fetch(self, runner: FakeRunner, tmp_path: Path) -> None:
        with pytest.raises(FetchError, match="No commit or version"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path))


class TestSubStepFailures:
    """Each sub-step fails with its own message."""

    def test_init(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "init"])
        with pytest.raises(FetchError, match="Error initializing git repo in temp directory"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT))

    def test_remote_add(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "remote"])
        with pytest.raises(FetchError, match=f"Error adding remote {REPO}"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT))

    def test_checkout(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "checkout"])
        with pytest.raises(FetchError, match="Unable to checkout FETCH_HEAD"):
            asyncio.run(_fetcher(runner).checkout(REPO, tmp_path, commit=COMMIT))

    def test_custom_git_binary(self, runner: FakeRunner, tmp_path: Path) -> None:
        fetcher = ShallowFetcher(lambda argv, cwd: runner.run(argv, cwd), git="/opt/git")
        asyncio.run(fetcher.checkout(REPO, tmp_path, commit=COMMIT))
        assert all(argv[0] == "/opt/git" for argv, _ in runner.calls)


class TestHeadCommit:
    def test_reads_commit(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.on(["git", "log"], (0, f'"{COMMIT}"\n', ""))
        assert asyncio.run(_fetcher(runner).head_commit(tmp_path)) == COMMIT
        assert runner.commands() == ["git log --format=%H -n 1"]

    def test_not_a_repository(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.fail(["git", "log"], "fatal: not a git repository")
        with pytest.raises(FetchError, match="Unable to determine current local commit"):
            asyncio.run(_fetcher(runner).head_commit(tmp_path))

    def test_empty_output(self, runner: FakeRunner, tmp_path: Path) -> None:
        runner.on(["git", "log"], (0, "\n", ""))
        with pytest.raises(FetchError):
            asyncio.run(_fetcher(runner).head_commit(tmp_path))
