from .download import router as download
