class HuffmanError(ValueError): # base class for every failure raised by the codec
    pass


class EmptyAlphabetError(HuffmanError): # no symbol with a positive count was given to the builder
    pass


class InvalidTreeError(HuffmanError): # absent tree, foreign object, or internal node missing a child
    pass


class MalformedCodeError(HuffmanError):
    """
    Raised while loading a code table: a code with characters other than 0/1,
    a symbol line without its code line, a bad symbol, or a code that collides
    with one already inserted (not prefix-free, or duplicated)
    """


class TruncatedStreamError(HuffmanError): # bit source ran dry in the middle of a code
    pass
