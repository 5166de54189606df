import asyncio

import pytest

from ai_git_wizard.config import Config, WorkingConfig
from ai_git_wizard.core import GitWizardWorkflow
from ai_git_wizard.exceptions import ConfigError, LLMError, WorkflowError
from ai_git_wizard.git import GitRepo
from ai_git_wizard.llm import BRANCH_SYSTEM_PROMPT, COMMIT_SYSTEM_PROMPT, LLMClient
from ai_git_wizard.models import PullRequest, RepoInfo
from ai_git_wizard.providers.base import BaseDriver

REPO = RepoInfo(owner="acme", name="widgets", remote_url="git@github.com:acme/widgets.git")


class _ScriptedDriver(BaseDriver):
    def __init__(self, delays=None, branch="feat/ai-branch", fail=False):
        super().__init__(Config())
        self.delays = delays or {}
        self.branch = branch
        self.fail = fail
        self.systems = []

    async def complete(self, messages):
        system = messages[0]["content"]
        prompt = messages[-1]["content"]
        self.systems.append(system)
        if self.fail:
            raise LLMError("OpenRouter API error: 503 Service Unavailable")
        if system == COMMIT_SYSTEM_PROMPT:
            path = next(
                line[len("File: "):]
                for line in prompt.splitlines()
                if line.startswith("File: ")
            )
            await asyncio.sleep(self.delays.get(path, 0))
            return f"chore: update {path}"
        if system == BRANCH_SYSTEM_PROMPT:
            return self.branch
        return "## PR body"


class _FakeGitHub:
    def __init__(self, existing=None):
        self.existing = existing
        self.calls = []
        self.closed = False

    async def find_existing_pr(self, branch):
        self.calls.append(("find", branch))
        return self.existing

    async def create_pull_request(self, branch, title, description, base="main"):
        self.calls.append(("create", branch, title, description, base))
        return PullRequest(number=1, title=title, html_url="https://github.com/acme/widgets/pull/1")

    async def update_pull_request(self, number, title, description):
        self.calls.append(("update", number, title, description))
        return PullRequest(number=number, title=title, html_url=self.existing.html_url)

    async def aclose(self):
        self.closed = True


def _working(valid=True, repo=REPO):
    config = Config(
        open_router_api_key="sk-or-test" if valid else None,
        github_token="ghp_test" if valid else None,
        max_concurrency=3,
    )
    missing = [] if valid else ["openRouterApiKey", "githubToken"]
    return WorkingConfig(config=config, repo=repo, is_valid=valid, missing=missing)


def _workflow(path, driver, github=None, working=None):
    working = working or _working()
    tokens = []

    def factory(token, repo):
        tokens.append((token, repo))
        return github

    wf = GitWizardWorkflow(
        working,
        git_repo=GitRepo(str(path)),
        llm_client=LLMClient(working.config, driver=driver, quiet=True),
        github_factory=factory,
    )
    wf.factory_calls = tokens
    return wf


def _stage_three(repo, run_git):
    run_git(repo, "rm", "-q", "README.md")
    (repo / "a.txt").write_text("a\n")
    (repo / "b.txt").write_text("b\n")
    run_git(repo, "add", "a.txt", "b.txt")


def test_commit_creates_one_commit_per_file_in_staged_order(git_repo, run_git):
    _stage_three(git_repo, run_git)
    staged = [c.path for c in GitRepo(str(git_repo)).get_staged_files()]
    # First file answers last
    delays = {path: 0.02 * (len(staged) - i) for i, path in enumerate(staged)}
    driver = _ScriptedDriver(delays=delays)

    result = asyncio.run(_workflow(git_repo, driver).run_commit())

    subjects = run_git(git_repo, "log", "--reverse", "--pretty=%s", "HEAD~3..HEAD")
    assert subjects.splitlines() == [f"chore: update {p}" for p in staged]
    assert [c.file_path for c in result.commits] == staged
    assert result.branch == "main"
    assert not result.pushed
    assert run_git(git_repo, "status", "--porcelain") == ""
    for commit in result.commits:
        files = run_git(
            git_repo, "diff-tree", "--no-commit-id", "--name-only", "-r",
            commit.commit_hash,
        )
        assert files == commit.file_path


def test_commit_leaves_unstaged_work_alone(git_repo, run_git):
    (git_repo / "staged.txt").write_text("s\n")
    (git_repo / "scratch.txt").write_text("keep me out\n")
    run_git(git_repo, "add", "staged.txt")

    result = asyncio.run(_workflow(git_repo, _ScriptedDriver()).run_commit())

    assert [c.file_path for c in result.commits] == ["staged.txt"]
    assert "?? scratch.txt" in run_git(git_repo, "status", "--porcelain")


def test_no_staged_files_aborts_without_model_calls(git_repo):
    driver = _ScriptedDriver()

    with pytest.raises(WorkflowError) as ei:
        asyncio.run(_workflow(git_repo, driver).run_commit())

    assert "No staged files" in str(ei.value)
    assert driver.systems == []


def test_invalid_config_aborts(git_repo):
    with pytest.raises(ConfigError) as ei:
        asyncio.run(
            _workflow(git_repo, _ScriptedDriver(), working=_working(valid=False)).run_commit()
        )
    assert "openRouterApiKey" in str(ei.value)


def test_not_a_git_repository(tmp_path):
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(WorkflowError):
        asyncio.run(_workflow(plain, _ScriptedDriver()).run_commit())


def test_model_failure_makes_no_commits(git_repo, run_git):
    (git_repo / "a.txt").write_text("a\n")
    run_git(git_repo, "add", "a.txt")
    head = run_git(git_repo, "rev-parse", "HEAD")

    with pytest.raises(LLMError):
        asyncio.run(_workflow(git_repo, _ScriptedDriver(fail=True)).run_commit())

    assert run_git(git_repo, "rev-parse", "HEAD") == head
    assert "A  a.txt" in run_git(git_repo, "status", "--porcelain")


def test_commit_with_push(repo_with_remote, run_git):
    (repo_with_remote / "a.txt").write_text("a\n")
    run_git(repo_with_remote, "add", "a.txt")

    result = asyncio.run(_workflow(repo_with_remote, _ScriptedDriver()).run_commit(push=True))

    assert result.pushed
    local = run_git(repo_with_remote, "rev-parse", "HEAD")
    remote = run_git(repo_with_remote, "ls-remote", "origin", "refs/heads/main")
    assert remote.split()[0] == local


def test_workflow_creates_branch_pushes_and_opens_pr(repo_with_remote, run_git):
    _stage_three(repo_with_remote, run_git)
    github = _FakeGitHub()
    wf = _workflow(repo_with_remote, _ScriptedDriver(), github=github)

    result = asyncio.run(wf.run_workflow())

    assert result.branch == "feat/ai-branch"
    assert run_git(repo_with_remote, "branch", "--show-current") == "feat/ai-branch"
    assert len(result.commits) == 3
    assert result.pushed
    assert run_git(repo_with_remote, "ls-remote", "origin", "refs/heads/feat/ai-branch")
    assert github.calls == [
        ("find", "feat/ai-branch"),
        ("create", "feat/ai-branch", "feat/ai-branch", "## PR body", "main"),
    ]
    assert github.closed
    assert wf.factory_calls == [("ghp_test", REPO)]
    assert result.pull_request.number == 1
    assert not result.pr_updated


def test_workflow_updates_existing_pr(repo_with_remote, run_git):
    (repo_with_remote / "a.txt").write_text("a\n")
    run_git(repo_with_remote, "add", "a.txt")
    existing = PullRequest(number=9, title="old", html_url="https://github.com/acme/widgets/pull/9")
    github = _FakeGitHub(existing=existing)

    result = asyncio.run(
        _workflow(repo_with_remote, _ScriptedDriver(), github=github).run_workflow(
            branch="feat/custom"
        )
    )

    assert result.branch == "feat/custom"
    assert result.pr_updated
    assert result.pull_request.number == 9
    assert github.calls[-1] == ("update", 9, "feat/custom", "## PR body")
    assert not any(call[0] == "create" for call in github.calls)


def test_requested_branch_skips_name_generation(repo_with_remote, run_git):
    (repo_with_remote / "a.txt").write_text("a\n")
    run_git(repo_with_remote, "add", "a.txt")
    driver = _ScriptedDriver()

    asyncio.run(
        _workflow(repo_with_remote, driver, github=_FakeGitHub()).run_workflow(
            branch="feat/custom", no_pr=True
        )
    )

    assert BRANCH_SYSTEM_PROMPT not in driver.systems


def test_no_pr_skips_github(repo_with_remote, run_git):
    (repo_with_remote / "a.txt").write_text("a\n")
    run_git(repo_with_remote, "add", "a.txt")
    wf = _workflow(repo_with_remote, _ScriptedDriver(), github=_FakeGitHub())

    result = asyncio.run(wf.run_workflow(no_pr=True))

    assert result.pushed
    assert result.pull_request is None
    assert wf.factory_calls == []


def test_generated_branch_collision_aborts_before_commit(repo_with_remote, run_git):
    run_git(repo_with_remote, "branch", "feat/ai-branch")
    (repo_with_remote / "a.txt").write_text("a\n")
    run_git(repo_with_remote, "add", "a.txt")
    head = run_git(repo_with_remote, "rev-parse", "HEAD")

    with pytest.raises(WorkflowError) as ei:
        asyncio.run(_workflow(repo_with_remote, _ScriptedDriver()).run_workflow())

    assert "already exists" in str(ei.value)
    assert run_git(repo_with_remote, "rev-parse", "HEAD") == head


def test_workflow_requires_github_repository(git_repo, run_git):
    (git_repo / "a.txt").write_text("a\n")
    run_git(git_repo, "add", "a.txt")

    with pytest.raises(WorkflowError) as ei:
        asyncio.run(
            _workflow(git_repo, _ScriptedDriver(), working=_working(repo=None)).run_workflow()
        )
    assert "GitHub remote" in str(ei.value)


def test_commit_in_repository_without_commits(tmp_path, run_git):
    fresh = tmp_path / "fresh"
    fresh.mkdir()
    run_git(fresh, "init", "-q")
    run_git(fresh, "config", "user.email", "dev@example.com")
    run_git(fresh, "config", "user.name", "Dev")
    run_git(fresh, "config", "commit.gpgsign", "false")
    (fresh / "a.txt").write_text("a\n")
    (fresh / "b.txt").write_text("b\n")
    run_git(fresh, "add", "a.txt", "b.txt")

    result = asyncio.run(_workflow(fresh, _ScriptedDriver()).run_commit())

    assert [c.file_path for c in result.commits] == ["a.txt", "b.txt"]
    log = run_git(fresh, "log", "--reverse", "--pretty=%s", "--name-only")
    assert log.split() == [
        "chore:", "update", "a.txt", "a.txt",
        "chore:", "update", "b.txt", "b.txt",
    ]


def test_commit_non_ascii_file_name(git_repo, run_git):
    (git_repo / "café.txt").write_text("c\n")
    (git_repo / "b.txt").write_text("b\n")
    run_git(git_repo, "add", "café.txt", "b.txt")

    result = asyncio.run(_workflow(git_repo, _ScriptedDriver()).run_commit())

    assert sorted(c.file_path for c in result.commits) == ["b.txt", "café.txt"]
    assert run_git(git_repo, "status", "--porcelain") == ""
    assert "chore: update café.txt" in run_git(git_repo, "log", "--pretty=%s")
