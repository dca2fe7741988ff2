"""Tests for the pre-publish local test pipeline."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from fakes import COMMIT, OTHER_SHASUM, SHASUM, FakeRunner, RecordingObserver, pack_reply
from packverify.core.progress import StepStatus
from packverify.pipeline.engine import PipelineResult
from packverify.pipeline.tester import TEST_STEPS, LocalTester

REPO = "https://example.com/example.git"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A package directory declaring a git repository."""
    directory = tmp_path / "example"
    directory.mkdir()
    _write_package_json(
        directory,
        {"name": "example", "version": "1.0.0", "repository": {"type": "git", "url": f"git+{REPO}"}},
    )
    return directory


@pytest.fixture
def runner() -> FakeRunner:
    return (
        FakeRunner()
        .on(["git", "log"], (0, f"{COMMIT}\n", ""))
        .on(["npm", "pack"], pack_reply())
    )


def _write_package_json(directory: Path, data: Any) -> None:
    (directory / "package.json").write_text(json.dumps(data), encoding="utf-8")


def _test(runner: FakeRunner, observer: RecordingObserver, directory: Path) -> PipelineResult:
    tester = LocalTester(observer=observer, runner=runner)  # type: ignore[arg-type]
    return asyncio.run(tester.test(directory))


def _pack_by_directory(local: Path, *, local_shasum: str, remote_shasum: str) -> Any:
    local_reply = pack_reply(shasum=local_shasum)
    remote_reply = pack_reply(shasum=remote_shasum)

    def handler(argv: tuple[str, ...], cwd: Path) -> tuple[int, str, str]:
        reply = local_reply if cwd == local.resolve() else remote_reply
        return reply(argv, cwd)

    return handler


class TestMatchingTree:
    def test_passes(self, runner: FakeRunner, observer: RecordingObserver, project: Path) -> None:
        result = _test(runner, observer, project)
        assert result.success
        assert {s.name: s.status.value for s in result.steps} == {
            "repo": "pass",
            "pack_local": "pass",
            "checkout": "pass",
            "install": "skipped",
            "pack_remote": "pass",
            "compare": "pass",
        }
        assert result.reason == f"Local package matches {REPO} at 0123456"

    def test_step_table_shape(
        self, runner: FakeRunner, observer: RecordingObserver, project: Path
    ) -> None:
        result = _test(runner, observer, project)
        assert [(s.name, s.title) for s in result.steps] == list(TEST_STEPS)

    def test_commands_and_directories(
        self, runner: FakeRunner, observer: RecordingObserver, project: Path
    ) -> None:
        _test(runner, observer, project)
        local = project.resolve()
        by_command = [(" ".join(argv), cwd) for argv, cwd in runner.calls]
        assert by_command[0] == ("npm pack --dry-run", local)
        assert by_command[1] == ("git log --format=%H -n 1", local)
        remote = [cwd for command, cwd in by_command[2:]]
        assert len(set(remote)) == 1 and remote[0] != local
        assert [command for command, _ in by_command[2:]] == [
            "git init",
            f"git remote add origin {REPO}",
            f"git fetch --depth 1 origin {COMMIT}",
            "git checkout FETCH_HEAD",
            "npm pack --dry-run",
        ]

    def test_workdir_removed_and_local_tree_untouched(
        self, runner: FakeRunner, observer: RecordingObserver, project: Path
    ) -> None:
        _test(runner, observer, project)
        workdirs = {cwd for argv, cwd in runner.calls if argv[:2] == ("git", "init")}
        assert workdirs and not any(path.exists() for path in workdirs)
        assert sorted(p.name for p in project.iterdir()) == ["package.json"]

    def test_remote_needs_install(
        self, observer: RecordingObserver, project: Path
    ) -> None:
        local = project.resolve()
        succeed = pack_reply()
        remote_attempts: list[Path] = []

        def handler(argv: tuple[str, ...], cwd: Path) -> tuple[int, str, str]:
            if cwd != local:
                remote_attempts.append(cwd)
                if len(remote_attempts) == 1:
                    return 1, "", "npm ERR! missing build tooling"
            return succeed(argv, cwd)

        runner = (
            FakeRunner()
            .on(["git", "log"], (0, f"{COMMIT}\n", ""))
            .on(["npm", "pack"], handler)
        )
        result = _test(runner, observer, project)
        assert result.success
        assert result.step("install").status is StepStatus.PASS
        assert "npm ci" in runner.commands()


class TestShasumMismatch:
    def test_compare_fails(self, observer: RecordingObserver, project: Path) -> None:
        runner = (
            FakeRunner()
            .on(["git", "log"], (0, f"{COMMIT}\n", ""))
            .on(
                ["npm", "pack"],
                _pack_by_directory(project, local_shasum=SHASUM, remote_shasum=OTHER_SHASUM),
            )
        )
        result = _test(runner, observer, project)
        assert not result.success
        compare = result.step("compare")
        assert compare.status is StepStatus.FAIL
        assert compare.reason == "Shasums do not match (local aaaaaaa, remote bbbbbbb)"
        assert any(SHASUM in n and OTHER_SHASUM in n for n in observer.messages("notice"))


class TestPackageJson:
    @pytest.mark.parametrize(
        ("data", "reason"),
        [
            ({"name": "example"}, "Repository not defined in package.json"),
            ({"repository": {"type": "svn", "url": "svn://x"}}, "Non-git repository defined in package.json"),
            ({"repository": "github:example/example"}, "Non-git repository defined in package.json"),
            ({"repository": {"type": "git"}}, "Repository URL not defined in package.json"),
            (["not", "an", "object"], "Repository not defined in package.json"),
        ],
    )
    def test_repository_problems(
        self,
        data: Any,
        reason: str,
        runner: FakeRunner,
        observer: RecordingObserver,
        project: Path,
    ) -> None:
        _write_package_json(project, data)
        result = _test(runner, observer, project)
        assert result.step("repo").status is StepStatus.FAIL
        assert result.step("repo").reason == reason
        assert runner.calls == []

    def test_missing_file(
        self, runner: FakeRunner, observer: RecordingObserver, tmp_path: Path
    ) -> None:
        result = _test(runner, observer, tmp_path)
        assert result.step("repo").reason == "Error reading package.json"
        assert result.reason == "Package includes repository: Error reading package.json"

    def test_invalid_json(
        self, runner: FakeRunner, observer: RecordingObserver, project: Path
    ) -> None:
        (project / "package.json").write_text("{not json", encoding="utf-8")
        result = _test(runner, observer, project)
        assert result.step("repo").reason == "Error reading package.json"


class TestStageFailures:
    def test_local_pack_fails(self, observer: RecordingObserver, project: Path) -> None:
        runner = FakeRunner().fail(["npm", "pack"], "npm ERR! invalid package.json")
        result = _test(runner, observer, project)
        assert result.step("pack_local").reason == "Error creating package from local files"
        assert result.step("checkout").status is StepStatus.PENDING
        assert "npm ci" not in runner.commands()

    def test_local_pack_without_shasum(self, observer: RecordingObserver, project: Path) -> None:
        runner = FakeRunner().on(["npm", "pack"], (0, "example-1.0.0.tgz\n", ""))
        result = _test(runner, observer, project)
        assert result.step("pack_local").reason == "Error parsing shasum from pack output"

    def test_not_a_git_tree(self, observer: RecordingObserver, project: Path) -> None:
        runner = (
            FakeRunner()
            .on(["npm", "pack"], pack_reply())
            .fail(["git", "log"], "fatal: not a git repository")
        )
        result = _test(runner, observer, project)
        assert result.step("checkout").reason == "Unable to determine current local commit"

    def test_commit_not_pushed(
        self, runner: FakeRunner, observer: RecordingObserver, project: Path
    ) -> None:
        runner.fail(["git", "fetch"], "fatal: couldn't find remote ref")
        result = _test(runner, observer, project)
        assert result.step("checkout").reason == "Unable to fetch commit from remote (0123456)"
        fetches = [c for c in runner.commands() if c.startswith("git fetch")]
        assert fetches == [f"git fetch --depth 1 origin {COMMIT}"]
