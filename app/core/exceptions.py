class BookCatalogError(Exception):
    pass


class BookValidationError(BookCatalogError):
    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(
            f"Book validation failed for: {', '.join(errors) or 'unknown fields'}"
        )


class DuplicateBookError(BookCatalogError):
    def __init__(self, isbn: str):
        self.isbn = isbn
        super().__init__(f"A book with ISBN '{isbn}' already exists.")
