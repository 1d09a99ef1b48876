import json
import httpx
import openai
import pytest
from langchain_core.language_models import FakeListChatModel
from essay_reviewer.samples import SAMPLE_ESSAY
from essay_reviewer.service.essay_evaluation import (
    EssayEvaluator,
    EssayTooShortError,
    EvaluationServiceError,
    MalformedResponseError,
    RateLimitedError,
    create_essay_evaluation_chain,
    parse_evaluation_response,
    validate_essay_text,
)
from conftest import build_evaluation_payload, evaluation_response


class RaisingChatModel(FakeListChatModel):
    """Chat model that raises the queued errors before answering."""

    errors: list = []

    def _call(self, *args, **kwargs):
        if self.errors:
            raise self.errors.pop(0)
        return super()._call(*args, **kwargs)


def test_validate_rejects_short_text():
    with pytest.raises(EssayTooShortError):
        validate_essay_text("Curta demais.")


def test_validate_rejects_few_words():
    with pytest.raises(EssayTooShortError):
        validate_essay_text("palavra " * 10 + "x" * 60)


def test_validate_accepts_sample_essay():
    assert validate_essay_text("  " + SAMPLE_ESSAY + "  ") == SAMPLE_ESSAY.strip()


def test_parse_plain_json():
    evaluation = parse_evaluation_response(evaluation_response(scores=[200, 160, 120, 80, 40]))
    assert evaluation.overall_score == 600
    assert [c.name for c in evaluation.competencies][0] == "Competência I"


def test_parse_fenced_json():
    raw = "```json\n" + evaluation_response() + "\n```"
    assert parse_evaluation_response(raw).overall_score == 800


def test_parse_defaults_missing_deviations():
    evaluation = parse_evaluation_response(evaluation_response())
    assert evaluation.deviations == []


def test_parse_rejects_invalid_json():
    with pytest.raises(MalformedResponseError):
        parse_evaluation_response("Aqui está a avaliação: {")


def test_parse_rejects_wrong_competency_count():
    payload = build_evaluation_payload()
    payload["competencies"] = payload["competencies"][:4]
    with pytest.raises(MalformedResponseError):
        parse_evaluation_response(json.dumps(payload))


def test_parse_rejects_missing_score():
    payload = build_evaluation_payload()
    del payload["overallScore"]
    with pytest.raises(MalformedResponseError):
        parse_evaluation_response(json.dumps(payload))


def test_parse_accepts_zero_score():
    evaluation = parse_evaluation_response(evaluation_response(scores=[0, 0, 0, 0, 0]))
    assert evaluation.overall_score == 0


def test_parse_recomputes_overall_score():
    payload = build_evaluation_payload(scores=[160, 160, 160, 160, 160])
    payload["overallScore"] = 900
    assert parse_evaluation_response(json.dumps(payload)).overall_score == 800


def test_chain_sends_essay_to_model():
    chain = create_essay_evaluation_chain(FakeListChatModel(responses=[evaluation_response()]))
    assert chain.invoke({"essay_text": SAMPLE_ESSAY}) == evaluation_response()


def test_evaluator_returns_result():
    evaluator = EssayEvaluator(FakeListChatModel(responses=[evaluation_response()]), max_retries=0)
    evaluation = evaluator.evaluate_essay(SAMPLE_ESSAY)
    assert evaluation.overall_score == 800
    assert len(evaluation.competencies) == 5


def test_evaluator_checks_length_before_calling_model():
    model = RaisingChatModel(responses=[evaluation_response()], errors=[AssertionError("called")])
    with pytest.raises(EssayTooShortError):
        EssayEvaluator(model, max_retries=0).evaluate_essay("muito curto")


def test_evaluator_wraps_provider_failure():
    model = RaisingChatModel(responses=[evaluation_response()], errors=[ConnectionError("offline")])
    with pytest.raises(EvaluationServiceError):
        EssayEvaluator(model, max_retries=0).evaluate_essay(SAMPLE_ESSAY)


def test_evaluator_retries_when_rate_limited():
    rate_limited = openai.RateLimitError(
        "Rate limit reached",
        response=httpx.Response(
            429,
            headers={"retry-after": "3"},
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"),
        ),
        body=None,
    )
    model = RaisingChatModel(responses=[evaluation_response()], errors=[rate_limited])
    waits = []

    evaluation = EssayEvaluator(model, max_retries=2, sleep=waits.append).evaluate_essay(SAMPLE_ESSAY)

    assert evaluation.overall_score == 800
    assert len(waits) == 1
    assert waits[0] >= 3


def test_evaluator_gives_up_after_max_retries():
    errors = [
        openai.RateLimitError(
            "Rate limit reached",
            response=httpx.Response(429, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")),
            body=None,
        )
        for _ in range(2)
    ]
    model = RaisingChatModel(responses=[evaluation_response()], errors=errors)
    waits = []

    with pytest.raises(RateLimitedError) as excinfo:
        EssayEvaluator(model, max_retries=1, sleep=waits.append).evaluate_essay(SAMPLE_ESSAY)
    assert excinfo.value.retry_after == 5
    assert len(waits) == 1


def test_evaluator_without_model_is_not_configured():
    with pytest.raises(EvaluationServiceError):
        EssayEvaluator(None).evaluate_essay(SAMPLE_ESSAY)
