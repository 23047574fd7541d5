"""errors raised by the external collaborators"""


class BureauParserError(Exception):
    """base error for the bureau parser"""

    pass


class OCRError(BureauParserError):
    """text recognition failed or produced nothing usable"""

    pass


class InterpreterError(BureauParserError):
    """report interpreter failed or returned non-conforming output"""

    pass
