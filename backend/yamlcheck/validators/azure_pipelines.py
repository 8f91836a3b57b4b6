"""Azure Pipelines analyzer - structural checks against a pipeline schema.

The schema is reduced to two lists: keys allowed at the top level and the
keys that identify a step kind. AZURE_PIPELINES_SCHEMA_PATH may point at the
official JSON schema; otherwise a small embedded schema is used.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel

from yamlcheck.validators.base import BaseAnalyzer
from yamlcheck.validators.models import Analysis, Message, Suggestion

logger = structlog.get_logger()

AZURE_SOURCE = "azure-schema"

STRING_STEP_KEYS = ("script", "bash", "powershell", "pwsh")


class AzurePipelinesSchema(BaseModel):
    allowed_root_keys: tuple[str, ...]
    known_step_keys: tuple[str, ...]
    path: Optional[str] = None  # None for the embedded schema

    model_config = {"frozen": True}


EMBEDDED_SCHEMA = AzurePipelinesSchema(
    allowed_root_keys=(
        "name", "trigger", "pr", "pool", "variables", "steps", "jobs", "stages",
        "resources", "schedules", "extends", "parameters",
    ),
    known_step_keys=(
        "script", "bash", "powershell", "pwsh", "task", "checkout",
        "download", "publish", "publishPipelineArtifact", "downloadPipelineArtifact",
    ),
)


def _step_variants(raw: dict) -> list:
    definitions = raw.get("definitions")
    if not isinstance(definitions, dict):
        return []
    steps = definitions.get("steps")
    if isinstance(steps, dict) and isinstance(steps.get("items"), dict):
        variants = steps["items"].get("oneOf")
        if isinstance(variants, list):
            return variants
    step = definitions.get("step")
    if isinstance(step, dict) and isinstance(step.get("oneOf"), list):
        return step["oneOf"]
    return []


@lru_cache
def load_azure_schema(path: Optional[str] = None) -> AzurePipelinesSchema:
    """Reduce a pipeline JSON schema to root and step keys.

    Falls back to the embedded schema when path is unset, unreadable, or
    yields neither list.
    """
    if not path:
        return EMBEDDED_SCHEMA
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("azure_schema_unreadable", path=path, error=str(e))
        return EMBEDDED_SCHEMA
    if not isinstance(raw, dict):
        return EMBEDDED_SCHEMA

    properties = raw.get("properties")
    root_keys = list(properties) if isinstance(properties, dict) else []
    step_keys: list[str] = []
    for variant in _step_variants(raw):
        if isinstance(variant, dict) and isinstance(variant.get("properties"), dict):
            step_keys.extend(k for k in variant["properties"] if k and k not in step_keys)

    if not root_keys and not step_keys:
        return EMBEDDED_SCHEMA
    return AzurePipelinesSchema(
        allowed_root_keys=tuple(root_keys) or EMBEDDED_SCHEMA.allowed_root_keys,
        known_step_keys=tuple(step_keys) or EMBEDDED_SCHEMA.known_step_keys,
        path=path,
    )


def _rename_key(container: dict, old: str, new: str) -> None:
    if old in container:
        container[new] = container.pop(old)


class AzurePipelinesAnalyzer(BaseAnalyzer):
    """Checks root keys, step discriminators and common step value types."""

    def __init__(self, schema: AzurePipelinesSchema = EMBEDDED_SCHEMA):
        self.schema = schema

    @property
    def name(self) -> str:
        return AZURE_SOURCE

    def analyze(self, doc: Any) -> Analysis:
        suggestions: list[Suggestion] = []
        messages: list[Message] = []
        if not isinstance(doc, dict):
            return Analysis()

        self._check_root_keys(doc, suggestions, messages)

        steps = doc.get("steps")
        jobs = doc.get("jobs")
        if steps is not None and not isinstance(steps, list):
            suggestions.append(Suggestion(path="steps", message="steps should be an array", kind="type"))
            messages.append(self._warning("steps should be an array", "steps"))
        if jobs is not None and not isinstance(jobs, list):
            suggestions.append(Suggestion(path="jobs", message="jobs should be an array", kind="type"))
            messages.append(self._warning("jobs should be an array", "jobs"))

        if isinstance(steps, list):
            self._check_steps(steps, "steps", lambda root: root["steps"], suggestions, messages)
        if isinstance(jobs, list):
            self._check_jobs(jobs, suggestions, messages)

        return Analysis(suggestions=tuple(suggestions), messages=tuple(messages))

    def _check_root_keys(self, doc: dict, suggestions: list, messages: list) -> None:
        for key in map(str, doc):
            if key in self.schema.allowed_root_keys:
                continue
            guess = self._best_guess(key, self.schema.allowed_root_keys)
            if guess is None:
                messages.append(self._warning(f"Unknown root key {key}", key))
                continue
            suggestions.append(Suggestion(
                path=key,
                message=f"Unknown root key {key}. Did you mean {guess}?",
                kind="rename",
                fix=lambda root, old=key, new=guess: _rename_key(root, old, new),
            ))
            messages.append(self._warning(f"Unknown root key {key} (suggest: {guess})", key))

    def _check_jobs(self, jobs: list, suggestions: list, messages: list) -> None:
        for j, job in enumerate(jobs):
            ptr = f"jobs[{j}]"
            if not isinstance(job, dict):
                suggestions.append(Suggestion(path=ptr, message="job should be an object", kind="type"))
                continue

            steps = job.get("steps")
            if isinstance(steps, list):
                self._check_steps(steps, f"{ptr}.steps", lambda root, j=j: root["jobs"][j]["steps"],
                                  suggestions, messages)
                continue
            if steps is not None:
                suggestions.append(Suggestion(path=f"{ptr}.steps", message="steps should be an array", kind="type"))

            def add_steps(root, j=j):
                root["jobs"][j]["steps"] = []

            suggestions.append(Suggestion(
                path=f"{ptr}.steps", message="Add steps array to job", kind="add", fix=add_steps,
            ))
            messages.append(self._warning("Job missing steps array", f"{ptr}.steps"))

    def _check_steps(
        self,
        steps: list,
        ptr: str,
        locate: Callable[[Any], list],
        suggestions: list,
        messages: list,
    ) -> None:
        known = self.schema.known_step_keys
        for i, step in enumerate(steps):
            at = f"{ptr}[{i}]"
            if not isinstance(step, dict):
                suggestions.append(Suggestion(path=at, message="step should be an object", kind="type"))
                continue
            if not step:
                suggestions.append(Suggestion(
                    path=at, message="empty step - add a step key like script/task", kind="add",
                ))
                continue

            keys = [str(k) for k in step]
            present = [k for k in keys if k in known]
            if not present:
                if len(keys) > 1:
                    messages.append(self._warning("No known step discriminator found", at))
                    continue
                key = keys[0]
                guess = self._best_guess(key, known)
                if guess is None:
                    messages.append(self._warning(f"Unknown step key {key}", f"{at}.{key}"))
                    continue
                suggestions.append(Suggestion(
                    path=f"{at}.{key}",
                    message=f"Unknown step key {key}. Did you mean {guess}?",
                    kind="rename",
                    fix=lambda root, i=i, old=key, new=guess: _rename_key(locate(root)[i], old, new),
                ))
                messages.append(self._warning(f"Unknown step key {key} (suggest: {guess})", f"{at}.{key}"))
                continue

            kind = present[0]
            value = step[kind]
            if kind in STRING_STEP_KEYS and not isinstance(value, str):
                suggestions.append(Suggestion(path=f"{at}.{kind}", message=f"{kind} should be a string", kind="type"))
                messages.append(self._warning(f"{kind} should be a string", f"{at}.{kind}"))
            if kind == "task":
                if not isinstance(value, str):
                    text = "task should be a string identifier like AzureCLI@2"
                    suggestions.append(Suggestion(path=f"{at}.task", message=text, kind="type"))
                    messages.append(self._warning(text, f"{at}.task"))
                if "inputs" in step and not isinstance(step["inputs"], dict):
                    suggestions.append(Suggestion(path=f"{at}.inputs", message="inputs should be an object", kind="type"))
                    messages.append(self._warning("inputs should be an object", f"{at}.inputs"))
