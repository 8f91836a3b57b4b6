"""Suggestion endpoints - provider analyzer findings and their fixes."""

from fastapi import APIRouter, Depends, HTTPException

from yamlcheck.api.rate_limit import enforce_rate_limit
from yamlcheck.errors import ParseError
from yamlcheck.models.requests import ApplySuggestionsRequest, SuggestRequest
from yamlcheck.models.responses import ApplySuggestionsResponse, SuggestionItem, SuggestResponse
from yamlcheck.validators.suggest import apply_suggestions, suggest

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


def _parse_failure(e: ParseError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"message": e.message, "line": e.line, "column": e.column},
    )


@router.post("/suggest", response_model=SuggestResponse)
async def suggest_fixes(body: SuggestRequest):
    """Azure Pipelines and CloudFormation suggestions. Generic YAML gets none."""
    try:
        report = suggest(body.yaml, body.provider)
    except ParseError as e:
        raise _parse_failure(e)

    return SuggestResponse(
        provider=report.provider,
        suggestions=[
            SuggestionItem(index=i, path=s.path, message=s.message, kind=s.kind, fixable=s.fixable)
            for i, s in enumerate(report.suggestions)
        ],
        messages=list(report.messages),
    )


@router.post("/apply-suggestions", response_model=ApplySuggestionsResponse)
async def apply_selected(body: ApplySuggestionsRequest):
    """Apply fixable suggestions by index and return the rewritten document."""
    try:
        fixed = apply_suggestions(body.yaml, body.indexes, body.provider)
    except ParseError as e:
        raise _parse_failure(e)
    return ApplySuggestionsResponse(yaml=fixed, changed=fixed != body.yaml)
