class ImporterError(Exception):
    """Base class for errors raised while importing the SKS register."""


class InvalidInputStructureError(ImporterError):
    """The input directory does not hold exactly one recognised register file."""


class MalformedRecordError(ImporterError):
    """
    A line in the register file could not be decoded. Fatal for the whole batch.
    """

    def __init__(self, message: str, line: str, line_number: int | None = None) -> None:
        self.message = message
        self.line = line
        self.line_number = line_number
        super().__init__(self.__str__())

    def with_line_number(self, line_number: int) -> "MalformedRecordError":
        return MalformedRecordError(self.message, self.line, line_number)

    def __str__(self) -> str:
        if self.line_number is None:
            return f"{self.message}. line={self.line}"
        return f"{self.message} (line {self.line_number}). line={self.line}"


class ImportProcessingError(ImporterError):
    """Reading the input or persisting the dataset failed."""
