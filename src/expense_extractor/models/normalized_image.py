from pydantic import BaseModel, ConfigDict, Field
from PIL import Image


class NormalizedImage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    width: int
    height: int
    mode: str = "RGBA"
    image: Image.Image = Field(..., description="Binarized pixels, alpha channel preserved")
    encoded: bytes = Field(..., description="Binarized image re-encoded for the OCR engine")
    mime_type: str = "image/jpeg"
