"""Error taxonomy shared by the pipeline, the providers and the HTTP layer.

Every error carries a short machine-readable ``code`` and the HTTP status it
maps to. Messages are meant to be shown to clients, so they never contain
credentials or provider response bodies.
"""


class DocQAError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(DocQAError):
    code = "unsupported_format"
    status_code = 400


class MissingQueryError(DocQAError):
    code = "missing_query"
    status_code = 400


class MissingDocumentError(DocQAError):
    code = "missing_document"
    status_code = 400


class DocumentNotFoundError(DocQAError):
    code = "document_not_found"
    status_code = 404


class DocumentParseError(DocQAError):
    code = "document_parse_error"
    status_code = 422


class EmptyDocumentError(DocQAError):
    code = "empty_document"
    status_code = 422


class DimensionMismatchError(DocQAError):
    code = "dimension_mismatch"
    status_code = 500


class EmbeddingProviderError(DocQAError):
    code = "embedding_provider_error"
    status_code = 502


class GenerationError(DocQAError):
    code = "generation_error"
    status_code = 502


class ProviderTimeoutError(DocQAError):
    code = "provider_timeout"
    status_code = 504
