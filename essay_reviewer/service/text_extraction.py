import base64
import logging
import mimetypes
from pathlib import Path
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser
from langchain_core.language_models.chat_models import BaseChatModel
from essay_reviewer.config import cfg
from langchain_openai import ChatOpenAI
from langchain_google_vertexai import ChatVertexAI
from langchain_anthropic import ChatAnthropic
from langchain_ollama import ChatOllama
from essay_reviewer.model.text_extract import TextExtractWithImage

logger = logging.getLogger(__name__)

PROMPT_INSTRUCTION = """Transcreva integralmente o texto manuscrito da redação presente na imagem. Considere o idioma Português.
Preserve a divisão em parágrafos e a grafia original, inclusive eventuais erros. Responda apenas com o texto transcrito, sem comentários."""

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


class UnsupportedImageError(ValueError):
    pass


class TranscriptionError(Exception):
    pass


def convert_base64(image_path: Path) -> str:
    bytes = image_path.read_bytes()
    return base64.b64encode(bytes).decode("utf-8")


def guess_image_type(image_path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(image_path.name)
    if mime_type not in SUPPORTED_IMAGE_TYPES:
        raise UnsupportedImageError(
            f"Formato de imagem não suportado: {image_path.suffix or image_path.name}. "
            f"Use um dos formatos: {', '.join(t.split('/')[1] for t in SUPPORTED_IMAGE_TYPES)}."
        )
    return mime_type


def to_data_url(image_path: Path) -> str:
    return f"data:{guess_image_type(image_path)};base64,{convert_base64(image_path)}"


def create_text_extract_chain(chat_model: BaseChatModel):
    image_message = {
        "type": "image_url",
        "image_url": {"url": "{image_data_url}"},
    }
    if isinstance(chat_model, (ChatOpenAI, ChatAnthropic)):
        prompt_template = ChatPromptTemplate.from_messages([
            ("system", PROMPT_INSTRUCTION),
            ("user", [image_message]),
        ])
    elif isinstance(chat_model, (ChatVertexAI, ChatOllama)):
        prompt_template = ChatPromptTemplate.from_messages([
            ("user", [{"type": "text", "text": PROMPT_INSTRUCTION}, image_message])
        ])
    elif isinstance(chat_model, BaseChatModel):
        prompt_template = ChatPromptTemplate.from_messages([
            ("user", [{"type": "text", "text": PROMPT_INSTRUCTION}, image_message])
        ])
    else:
        raise ValueError(f"Model type {type(chat_model)} not supported")

    return prompt_template | chat_model | StrOutputParser()


def execute_transcription(chat_model: BaseChatModel, image_path: Path) -> TextExtractWithImage:
    image_path = Path(image_path)
    image_data_url = to_data_url(image_path)
    chain = create_text_extract_chain(chat_model)
    try:
        main_text = chain.invoke({"image_data_url": image_data_url}).strip()
    except Exception as e:
        logger.error(f"Failed to transcribe {image_path}: {e}")
        raise TranscriptionError("Não foi possível transcrever a imagem da redação. Tente novamente.") from e
    logger.info(f"Transcribed {image_path.name}: {len(main_text.split())} words")
    return TextExtractWithImage(path=image_path, main_text=main_text, image_data_url=image_data_url)


class AiConversion:
    def __init__(self, model):
        self.model = model

    def convert_to_text(self, image_path: Path) -> TextExtractWithImage:
        if self.model is None:
            raise TranscriptionError(f"{type(self).__name__} is not configured. Check the model settings in your .env file.")
        return execute_transcription(self.model, image_path)


class OpenAiConversion(AiConversion):
    def __init__(self):
        super().__init__(cfg.chat_openai)


class VertexAiConversion(AiConversion):
    def __init__(self):
        super().__init__(cfg.vertexai_gemini)


class AnthropicConversion(AiConversion):
    def __init__(self):
        super().__init__(cfg.chat_anthropic)


class OllamaConversion(AiConversion):
    def __init__(self):
        super().__init__(cfg.chat_ollama)
