"""Submit a workflow package for team review as a GitHub pull request.

git and the GitHub CLI (gh) do the actual work; this module gates the
submission on the validator and drives both tools.
"""
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

import yaml
from loguru import logger

from core.logging import audit_log
from core.report import ValidationReport
from core.specs import MetadataDocument
from core.validator import METADATA_FILE, load_yaml, validate_package

PR_LABELS = "workflow,team-review"

PR_BODY_TEMPLATE = """## New Workflow Submission

### Workflow Details
- **Name:** {name}
- **Author:** {author}
- **Category:** {category}
- **Description:** {description}

### Files Added/Modified
- `{path}/workflow.json` - n8n workflow definition
- `{path}/metadata.yml` - workflow metadata
- `{path}/README.md` - documentation
- `{path}/auth-config.yml` - authentication configuration

### Pre-submission Checklist
- [x] Workflow validation passed
- [x] Documentation is complete and accurate
- [x] Authentication requirements documented
- [x] No sensitive data in workflow files
- [ ] **Reviewer:** Test workflow functionality
- [ ] **Reviewer:** Verify documentation accuracy
- [ ] **Reviewer:** Check security considerations

### Testing Instructions

1. **Import the workflow:**
   ```bash
   n8n-workflows import {path}
   ```

2. **Configure credentials** (see `auth-config.yml`)

3. **Test with sample data** (see `test-data/` directory)

4. **Verify expected outputs**

### Security Review
- [ ] No hardcoded secrets or API keys
- [ ] Proper error handling for sensitive operations
- [ ] Credential requirements documented
- [ ] Follows team security guidelines

### Deployment Notes
- Workflow can be safely imported to any n8n instance
- All dependencies are documented
- Authentication setup is clearly explained
"""

COMMIT_TEMPLATE = """feat: add {name} workflow

- Add new team workflow: {name}
- Include documentation and authentication configuration
- Ready for team review and testing

Workflow location: {path}"""


class SubmissionError(Exception):
    def __init__(self, message: str, report: Optional[ValidationReport] = None) -> None:
        super().__init__(message)
        self.report = report


@dataclass(frozen=True)
class SubmissionResult:
    branch: str
    pr_url: str
    report: ValidationReport


Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class Submitter:
    """Drive git and gh to turn a validated package into a pull request."""

    def __init__(
        self,
        project_root: Union[str, Path],
        workflows_dir: str = "workflows",
        runner: Runner = subprocess.run,
    ) -> None:
        self.project_root = Path(project_root)
        self.workflows_dir = workflows_dir
        self._runner = runner

    def _run(self, *args: str, check: bool = True) -> "subprocess.CompletedProcess[str]":
        logger.debug(f"Running: {' '.join(args)}")
        try:
            result = self._runner(
                list(args),
                cwd=self.project_root,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise SubmissionError(f"{args[0]} is not installed") from exc
        if check and result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise SubmissionError(f"`{' '.join(args)}` failed: {output}")
        return result

    def relative_path(self, name: str) -> str:
        return (Path(self.workflows_dir) / name).as_posix()

    def package_dir(self, name: str) -> Path:
        return self.project_root / self.workflows_dir / name

    def check_prerequisites(self) -> List[str]:
        """
        Make sure gh is installed and authenticated and we are inside a git repository.

        Returns:
            Uncommitted changes as reported by ``git status --porcelain``
        """
        try:
            self._run("gh", "--version")
        except SubmissionError as exc:
            raise SubmissionError(
                "GitHub CLI (gh) is not installed. Visit https://cli.github.com/"
            ) from exc
        if self._run("gh", "auth", "status", check=False).returncode != 0:
            raise SubmissionError("Not authenticated with GitHub CLI. Run: gh auth login")
        if self._run("git", "rev-parse", "--git-dir", check=False).returncode != 0:
            raise SubmissionError("Not in a git repository")

        status = self._run("git", "status", "--porcelain")
        return [line for line in status.stdout.splitlines() if line.strip()]

    def validate(self, name: str) -> ValidationReport:
        package_dir = self.package_dir(name)
        if not package_dir.is_dir():
            raise SubmissionError(f"Workflow directory not found: {package_dir}")

        report = validate_package(package_dir)
        if not report.valid:
            raise SubmissionError(
                f"Workflow validation failed with {len(report.errors)} error(s)", report=report
            )
        return report

    def branch_name(self, name: str, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        return f"workflow/{name}-{stamp}"

    def load_metadata(self, name: str) -> MetadataDocument:
        path = self.package_dir(name) / METADATA_FILE
        if not path.exists():
            return MetadataDocument()
        try:
            raw: Any = load_yaml(path)
        except (OSError, ValueError, RecursionError, yaml.YAMLError) as exc:
            logger.warning(f"Could not read {METADATA_FILE}: {exc}")
            return MetadataDocument()
        return MetadataDocument.from_raw(raw)

    def render_pr_body(self, name: str, metadata: MetadataDocument) -> str:
        return PR_BODY_TEMPLATE.format(
            name=name,
            author=metadata.author or "",
            category=metadata.category or "",
            description=metadata.description or "",
            path=self.relative_path(name),
        )

    def submit(self, name: str, draft: bool = False, now: Optional[datetime] = None) -> SubmissionResult:
        """
        Validate the package, then branch, commit, push and open the pull request.

        Prerequisites are checked separately with check_prerequisites().

        Raises:
            SubmissionError: If validation fails or any git/gh step fails
        """
        report = self.validate(name)
        branch = self.branch_name(name, now)
        path = self.relative_path(name)

        logger.info(f"Creating feature branch: {branch}")
        self._run("git", "checkout", "main")
        self._run("git", "pull", "origin", "main")
        self._run("git", "checkout", "-b", branch)

        logger.info("Committing workflow changes...")
        self._run("git", "add", path)
        self._run("git", "commit", "-m", COMMIT_TEMPLATE.format(name=name, path=path))

        logger.info("Creating pull request...")
        self._run("git", "push", "-u", "origin", branch)
        pr_args = [
            "gh",
            "pr",
            "create",
            "--title",
            f"Add {name} workflow",
            "--body",
            self.render_pr_body(name, self.load_metadata(name)),
            "--assignee",
            "@me",
            "--label",
            PR_LABELS,
        ]
        if draft:
            pr_args.append("--draft")
        self._run(*pr_args)
        pr_url = self._run("gh", "pr", "view", "--json", "url", "--jq", ".url").stdout.strip()

        audit_log(
            "submit_workflow",
            actor="cli",
            details={"name": name, "branch": branch, "pr_url": pr_url, "draft": draft},
        )
        return SubmissionResult(branch=branch, pr_url=pr_url, report=report)
