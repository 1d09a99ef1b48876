from pathlib import Path
from pydantic import BaseModel, Field


class TextExtract(BaseModel):
    main_text: str = Field(description="The essay text transcribed from the image")


class TextExtractWithImage(TextExtract):
    path: Path = Field(description="The original path of the image")
    image_data_url: str = Field(description="data: URL sent to the model")
