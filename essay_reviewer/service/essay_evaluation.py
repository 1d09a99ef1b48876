import json
import logging
import re
import time
from typing import Optional
import anthropic
import openai
from pydantic import ValidationError
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser
from langchain_core.language_models.chat_models import BaseChatModel
from essay_reviewer.config import cfg
from langchain_openai import ChatOpenAI
from langchain_google_vertexai import ChatVertexAI
from langchain_anthropic import ChatAnthropic
from langchain_ollama import ChatOllama
from essay_reviewer.model.evaluation_result import (
    COMPETENCY_COUNT,
    COMPETENCY_SCORE_STEPS,
    EvaluationResult,
)
from essay_reviewer.utils.retry_utils import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

MIN_ESSAY_CHARS = 50
MIN_ESSAY_WORDS = 30
DEFAULT_RETRY_AFTER = 5

SYSTEM_INSTRUCTION = "Você é um avaliador especialista em redações do ENEM (Exame Nacional do Ensino Médio) do Brasil."

# Literal braces are doubled because this text is a prompt template.
OUTPUT_SCHEMA = """
    {{
        "overallScore": integer (0-1000),
        "summary": string,
        "competencies": [
            {{
                "name": string ("Competência I", "Competência II", etc.),
                "score": integer (0, 40, 80, 120, 160, or 200),
                "feedback": string
            }}
        ],
        "improvementInsights": [string, string, ...],
        "deviations": [
            {{
                "competency": string ("I", "II", "III", "IV", "V"),
                "type": string (e.g., "Erro de Ortografia", "Concordância Verbal"),
                "originalExcerpt": string (the original text with the error),
                "correction": string (the suggested correction),
                "comment": string (explanation of the error)
            }}
        ]
    }}
"""

PROMPT_INSTRUCTION = """Sua tarefa é analisar o texto de uma redação fornecido a seguir e fornecer uma avaliação detalhada e construtiva.

Siga estas etapas rigorosamente:
1.  **Avaliação por Competências:** Avalie o texto com base nas 5 competências oficiais do ENEM.
    *   **Competência I:** Demonstrar domínio da modalidade escrita formal da língua portuguesa.
    *   **Competência II:** Compreender a proposta de redação e aplicar conceitos das várias áreas de conhecimento para desenvolver o tema, dentro dos limites estruturais do texto dissertativo-argumentativo em prosa.
    *   **Competência III:** Selecionar, relacionar, organizar e interpretar informações, fatos, opiniões e argumentos em defesa de um ponto de vista.
    *   **Competência IV:** Demonstrar conhecimento dos mecanismos linguísticos necessários para a construção da argumentação.
    *   **Competência V:** Elaborar proposta de intervenção para o problema abordado, respeitando os direitos humanos.
2.  **Atribuição de Notas:** Para cada competência, atribua uma nota de 0 a 200, em incrementos de 40 (0, 40, 80, 120, 160, 200).
3.  **Feedback Detalhado:** Para cada competência, forneça um parágrafo de feedback explicando a nota atribuída. Destaque os pontos fortes e as áreas que precisam de melhoria, oferecendo sugestões claras e práticas.
4.  **Resumo Geral e Nota Final:** Calcule a nota final somando as notas das 5 competências. Escreva um parágrafo de resumo geral da avaliação, consolidando os principais pontos de feedback.
5.  **Dicas de Melhoria:** Com base na análise, forneça uma lista curta (3 a 5 itens) de dicas acionáveis e específicas para o autor melhorar sua escrita em futuras redações.
6.  **Desvios Gramaticais:** Identifique desvios gramaticais ou de norma culta. Para cada desvio, indique a competência afetada, o tipo de erro, o trecho original, uma sugestão de correção e um breve comentário. Se não houver desvios, retorne uma lista vazia para "deviations".
7.  **Formato de Saída:** Sua resposta DEVE ser um único objeto JSON válido, sem nenhuma formatação de markdown. O JSON deve seguir estritamente a seguinte estrutura: """ + OUTPUT_SCHEMA + """

---

# REDAÇÃO PARA ANÁLISE:

{essay_text}"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class EssayEvaluationError(Exception):
    """Base class for every failure of an evaluation round trip."""


class EssayTooShortError(EssayEvaluationError):
    pass


class RateLimitedError(EssayEvaluationError):
    def __init__(self, retry_after: float = DEFAULT_RETRY_AFTER):
        self.retry_after = retry_after
        super().__init__(
            f"Limite de requisições atingido. Por favor, aguarde {retry_after:g} segundos e tente novamente."
        )


class MalformedResponseError(EssayEvaluationError):
    pass


class EvaluationServiceError(EssayEvaluationError):
    pass


def validate_essay_text(essay_text: Optional[str]) -> str:
    text = (essay_text or "").strip()
    if len(text) < MIN_ESSAY_CHARS:
        raise EssayTooShortError("O texto da redação é muito curto para ser analisado. Por favor, escreva mais.")
    if len(text.split()) < MIN_ESSAY_WORDS:
        raise EssayTooShortError(
            "O texto da redação parece muito curto. Por favor, verifique se o texto está completo antes de analisar."
        )
    return text


def parse_evaluation_response(raw: str) -> EvaluationResult:
    cleaned = _CODE_FENCE.sub("", (raw or "").strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            "Não foi possível processar a resposta da IA. O formato do JSON retornado é inválido."
        ) from e

    if (
        not isinstance(data, dict)
        or data.get("overallScore") is None
        or not isinstance(data.get("competencies"), list)
        or len(data["competencies"]) != COMPETENCY_COUNT
    ):
        logger.warning(f"Validation failed for parsed result: {data!r:.500}")
        raise MalformedResponseError(
            "A resposta da IA está em um formato inválido ou incompleto. "
            "A estrutura do JSON recebido não corresponde ao esperado."
        )

    try:
        evaluation = EvaluationResult.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            "A resposta da IA está em um formato inválido ou incompleto. "
            "A estrutura do JSON recebido não corresponde ao esperado."
        ) from e

    for competency in evaluation.competencies:
        if competency.score not in COMPETENCY_SCORE_STEPS:
            logger.warning(f"{competency.name} scored {competency.score}, outside the 40-point scale")

    total = evaluation.competency_total()
    if evaluation.overall_score != total:
        logger.warning(f"Model reported overallScore={evaluation.overall_score}, competencies add up to {total}")
        evaluation = evaluation.model_copy(update={"overall_score": total})
    return evaluation


def _retry_after_from(error: Exception) -> float:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) or {}
    try:
        return float(headers.get("retry-after", DEFAULT_RETRY_AFTER))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


def create_essay_evaluation_chain(chat_model: BaseChatModel):
    if isinstance(chat_model, (ChatOpenAI, ChatAnthropic)):
        prompt_template = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_INSTRUCTION),
            ("user", PROMPT_INSTRUCTION)
        ])
    elif isinstance(chat_model, (ChatVertexAI, ChatOllama)):
        prompt_template = ChatPromptTemplate.from_messages([
            ("user", SYSTEM_INSTRUCTION + " " + PROMPT_INSTRUCTION)
        ])
    elif isinstance(chat_model, BaseChatModel):
        prompt_template = ChatPromptTemplate.from_messages([
            ("user", SYSTEM_INSTRUCTION + " " + PROMPT_INSTRUCTION)
        ])
    else:
        raise ValueError(f"Model type {type(chat_model)} not supported")

    return prompt_template | chat_model | StrOutputParser()


def execute_essay_evaluation(chat_model: BaseChatModel, essay_text: str) -> EvaluationResult:
    chain = create_essay_evaluation_chain(chat_model)
    try:
        raw = chain.invoke({"essay_text": essay_text})
    except (openai.RateLimitError, anthropic.RateLimitError) as e:
        raise RateLimitedError(_retry_after_from(e)) from e
    except Exception as e:
        logger.error(f"Erro ao processar a análise: {e}")
        raise EvaluationServiceError(
            "Houve um problema ao se comunicar com o serviço de IA. Tente novamente."
        ) from e
    return parse_evaluation_response(raw)


class EssayEvaluator:
    def __init__(self, model, max_retries: Optional[int] = None, sleep=time.sleep):
        self.model = model
        self.max_retries = cfg.evaluation_max_retries if max_retries is None else max_retries
        self.sleep = sleep

    def evaluate_essay(self, essay_text: str) -> EvaluationResult:
        if self.model is None:
            raise EvaluationServiceError(
                f"{type(self).__name__} is not configured. Check the model settings in your .env file."
            )
        text = validate_essay_text(essay_text)
        evaluate = retry_with_exponential_backoff(
            max_retries=self.max_retries,
            exceptions=(RateLimitedError,),
            sleep=self.sleep,
        )(execute_essay_evaluation)
        return evaluate(self.model, text)


class OpenAiEssayEvaluator(EssayEvaluator):
    def __init__(self, **kwargs):
        super().__init__(cfg.chat_openai, **kwargs)


class VertexAiEssayEvaluator(EssayEvaluator):
    def __init__(self, **kwargs):
        super().__init__(cfg.vertexai_gemini, **kwargs)


class AnthropicEssayEvaluator(EssayEvaluator):
    def __init__(self, **kwargs):
        super().__init__(cfg.chat_anthropic, **kwargs)


class OllamaEssayEvaluator(EssayEvaluator):
    def __init__(self, **kwargs):
        super().__init__(cfg.chat_ollama, **kwargs)
