"""
ObjectId column exception classes.
"""


class ObjectIdColumnsError(Exception):
    """Base class for all objectid_columns errors.

    Carries the record type, column and offending value (when known) so
    a failure can be diagnosed without re-deriving state.
    """

    def __init__(self, message: str, record_type: str | None = None,
                 column: str | None = None, value=None) -> None:
        super().__init__(message)
        self.record_type = record_type
        self.column = column
        self.value = value


class NotAnObjectIdColumn(ObjectIdColumnsError):
    """Column was never registered as an ObjectId column.
    """


class RegistrationError(ObjectIdColumnsError):
    """Error declaring a column or primary key as ObjectId-typed.
    """


class UnknownColumn(RegistrationError):
    """Record type has no column of that name.
    """


class UnsupportedStorageKind(RegistrationError):
    """Column is neither a string nor a binary column.
    """


class ColumnTooShort(RegistrationError):
    """Declared column length cannot hold an ObjectId in its storage format.
    """


class MissingPrimaryKey(RegistrationError):
    """No primary key is configured and none was supplied.
    """


class UnsupportedPrimaryKeyShape(RegistrationError):
    """Primary key is composite or otherwise not a plain column name.
    """


class AccessorConflict(RegistrationError):
    """Host cannot install an accessor without clobbering a mapped attribute.
    """


class ConversionError(ObjectIdColumnsError, ValueError):
    """Error converting a value to or from an ObjectId column.
    """


class InvalidIdentifierFormat(ConversionError):
    """Value is not an ObjectId in any accepted format.
    """

    def __init__(self, value, column: str | None = None,
                 record_type: str | None = None, message: str | None = None) -> None:
        if message is None and column is None:
            message = f'Not a valid ObjectId in any supported format: {value!r}'
        elif message is None:
            message = (f'When trying to write the ObjectId column {column!r} on '
                       f'{record_type}, we were passed the following value, which '
                       f"doesn't seem to be a valid ObjectId in any format: {value!r}")
        super().__init__(message, record_type=record_type, column=column, value=value)


class UnreadableStoredValue(ConversionError):
    """Stored value is neither text nor bytes.
    """


class CorruptStoredIdentifier(ConversionError):
    """Stored value is text or bytes but does not decode to an ObjectId.
    """


class InvalidQueryOperand(InvalidIdentifierFormat):
    """Query constraint on an ObjectId column has an unusable operand.
    """
