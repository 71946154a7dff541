from fastapi import Depends
from functools import lru_cache
from typing import Annotated

from skuld.modules.pdf.renderer import DocumentPdfRenderer


@lru_cache()
def get_pdf_renderer() -> DocumentPdfRenderer:
    return DocumentPdfRenderer()


pdf_renderer_dependency = Annotated[DocumentPdfRenderer, Depends(get_pdf_renderer)]
