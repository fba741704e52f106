"""Runtime support for generated HTTP binding code."""

from .checksums import ChecksumConfig as ChecksumConfig
from .checksums import ChecksumMismatchError as ChecksumMismatchError
from .headers import ParseError as ParseError
from .message import Body as Body
from .message import BuildError as BuildError
from .message import ByteStream as ByteStream
from .message import Headers as Headers
from .message import HttpRequest as HttpRequest
from .message import HttpResponse as HttpResponse
from .payload import Codec as Codec
from .payload import JsonCodec as JsonCodec
from .payload import ProtocolError as ProtocolError
from .sensitivity import Sensitivity as Sensitivity
from .timestamps import TimestampFormat as TimestampFormat
