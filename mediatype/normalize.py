import logging
import re
import urllib.parse
from typing import Any, Dict, List, Mapping, Optional, Tuple

from frozendict import frozendict

from mediatype.core import MediaTypeError


logger = logging.getLogger(__name__)

_TSPECIALS = frozenset('()<>@,;:\\"/[]?=')

_MALFORMED_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def is_tspecial(char: str) -> bool:
    return char in _TSPECIALS


def is_token_char(char: str) -> bool:
    return ' ' < char < '\x7f' and not is_tspecial(char)


def consume_token(value: str) -> Tuple[str, str]:
    """
    Splits the leading token off the specified string.

    :param value: String starting with a token
    :return: Token and remaining string. The token is empty if the string
        does not start with a token character.
    """
    end = 0
    while end < len(value) and is_token_char(value[end]):
        end += 1
    return value[:end], value[end:]


def consume_value(value: str) -> Tuple[str, str]:
    """
    Splits a leading token or quoted string off the specified string.

    Backslashes inside quoted strings only escape tspecials, so that
    unescaped Windows paths survive.

    :param value: String starting with a parameter value
    :return: Unquoted value and remaining string. If no valid value could be
        read, the value is empty and the remaining string is the input.
    """
    if not value:
        return '', value
    if value[0] != '"':
        return consume_token(value)

    chars = []
    i = 1
    while i < len(value):
        char = value[i]
        if char == '"':
            return ''.join(chars), value[i + 1:]
        if char == '\\' and i + 1 < len(value) and is_tspecial(value[i + 1]):
            chars.append(value[i + 1])
            i += 2
            continue
        if char in '\r\n':
            return '', value
        chars.append(char)
        i += 1
    # No closing quote
    return '', value


def consume_media_param(value: str) -> Tuple[str, str, str]:
    """
    Splits a leading ``;name=value`` pair off the specified string.

    :param value: String starting with a parameter
    :return: Lowercase name, value, and remaining string. The name is empty
        if no parameter could be read, in which case the remaining string is
        the input.
    """
    rest = value.lstrip()
    if not rest.startswith(';'):
        return '', '', value

    rest = rest[1:].lstrip()
    name, rest = consume_token(rest)
    name = name.lower()
    if not name:
        return '', '', value

    rest = rest.lstrip()
    if not rest.startswith('='):
        return '', '', value
    rest = rest[1:].lstrip()
    param_value, remainder = consume_value(rest)
    if not param_value and remainder == rest:
        return '', '', value
    return name, param_value, remainder


def unescape(value: str) -> Optional[bytes]:
    """
    Returns the octets of a percent-encoded string, or None if it contains a
    ``%`` that is not followed by two hex digits.
    """
    if _MALFORMED_ESCAPE.search(value):
        return None
    return urllib.parse.unquote_to_bytes(value)


def check_media_type(media_type: str) -> None:
    """
    Raises an error if the specified type is not of the form ``token`` or
    ``token/token``.

    :param media_type: Type without parameters
    :raises MediaTypeError: if the type is malformed
    """
    main_type, rest = consume_token(media_type)
    if not main_type:
        raise MediaTypeError('mime: no media type', media_type)
    if not rest:
        return
    if not rest.startswith('/'):
        raise MediaTypeError('mime: expected slash after first token', media_type)
    sub_type, rest = consume_token(rest[1:])
    if not sub_type:
        raise MediaTypeError('mime: expected token after slash', media_type)
    if rest:
        raise MediaTypeError('mime: unexpected content after media subtype', media_type)


class Normalizer:
    """
    Turns raw media type strings like the value of a ``Content-Type`` header
    into a normalized lowercase type string and a read-only mapping of
    parameters.

    The grammar follows RFC 2045 and RFC 2616 for the type and its
    parameters, and RFC 2231 for extended and continued parameter values.

    The following settings are read from the configuration:

    - ``decode_extended_parameters``: whether RFC 2231 parameters like
      ``title*=utf-8''caf%C3%A9`` are decoded and joined (default: ``True``)
    - ``extended_charsets``: charsets accepted in extended parameter values
      (default: ``{'us-ascii', 'utf-8'}``)
    """
    def __init__(self, config: Optional[Mapping[str, Any]] = None) -> None:
        """
        Initializes a new `Normalizer`.

        :param config: Mapping with settings.
        """
        self.config = {
            'decode_extended_parameters': True,
            'extended_charsets': {'us-ascii', 'utf-8'},
        }
        if config:
            self.config.update(config)

    def normalize(self, raw: str) -> Tuple[str, Mapping[str, str]]:
        """
        Normalizes the specified media type string.

        >>> from mediatype.normalize import Normalizer
        >>> Normalizer().normalize('Text/HTML; Charset="utf-8"')
        ('text/html', frozendict({'charset': 'utf-8'}))

        :param raw: Media type string, optionally with parameters
        :type raw: str
        :return: Normalized type string and parameters
        :rtype: tuple(str, frozendict)
        :raises MediaTypeError: if the string cannot be parsed
        """
        base, _, rest = raw.partition(';')
        media_type = base.strip().lower()
        check_media_type(media_type)

        params = {}  # type: Dict[str, str]
        continuations = {}  # type: Dict[str, Dict[str, str]]
        value = rest and ';' + rest
        while True:
            value = value.lstrip()
            if not value:
                break
            name, param_value, value = consume_media_param(value)
            if not name:
                if value.strip() == ';':
                    # Trailing semicolon
                    break
                raise MediaTypeError('mime: invalid media parameter', raw)

            pieces = params
            if self.config['decode_extended_parameters'] and '*' in name:
                base_name = name.partition('*')[0]
                pieces = continuations.setdefault(base_name, {})
            if name in pieces and pieces[name] != param_value:
                raise MediaTypeError('mime: duplicate parameter name', raw)
            pieces[name] = param_value

        for base_name, pieces in continuations.items():
            joined = self._join_continuation(base_name, pieces)
            if joined is not None:
                params[base_name] = joined

        return media_type, frozendict(params)
    def _join_continuation(self, name: str, pieces: Mapping[str, str]) -> Optional[str]:
        """
        Returns the value of an RFC 2231 parameter assembled from its pieces,
        or None if there is nothing that can be decoded.

        The pieces are joined as octets and decoded once with the charset of
        the first piece, so characters may span several pieces.
        """
        single = pieces.get(name + '*')
        if single is not None:
            extended = self._split_extended(name, single)
            if extended is None:
                return None
            charset, data = extended
            return self._decode(name, data, charset)

        charset = 'utf-8'
        chunks = []  # type: List[bytes]
        index = 0
        while True:
            simple_name = '%s*%d' % (name, index)
            if simple_name in pieces:
                try:
                    chunks.append(pieces[simple_name].encode(charset))
                except (LookupError, UnicodeEncodeError):
                    logger.debug('Dropping parameter %r that cannot be encoded as %r', name, charset)
                    return None
            elif simple_name + '*' in pieces:
                encoded = pieces[simple_name + '*']
                if index == 0:
                    extended = self._split_extended(name, encoded)
                    if extended is not None:
                        charset, data = extended
                        chunks.append(data)
                else:
                    data = unescape(encoded)
                    if data is None:
                        logger.debug('Skipping piece %r with malformed escapes: %r', simple_name, encoded)
                    else:
                        chunks.append(data)
            else:
                break
            index += 1

        if index == 0:
            return None
        return self._decode(name, b''.join(chunks), charset)

    def _split_extended(self, name: str, value: str) -> Optional[Tuple[str, bytes]]:
        """
        Splits a ``charset'language'percent-encoded`` value into its charset
        and unescaped octets.
        """
        fields = value.split("'", 2)
        if len(fields) != 3:
            logger.debug('Dropping parameter %r without charset and language: %r', name, value)
            return None
        charset = fields[0].lower()
        if charset not in self.config['extended_charsets']:
            logger.debug('Dropping parameter %r with unsupported charset %r', name, charset)
            return None
        data = unescape(fields[2])
        if data is None:
            logger.debug('Dropping parameter %r with malformed escapes: %r', name, value)
            return None
        return charset, data

    @staticmethod
    def _decode(name: str, data: bytes, charset: str) -> Optional[str]:
        try:
            return data.decode(charset)
        except (LookupError, UnicodeDecodeError):
            logger.debug('Dropping parameter %r that cannot be decoded as %r', name, charset)
            return None


def normalize(raw: str) -> Tuple[str, Mapping[str, str]]:
    """
    Normalizes the specified media type string with the default settings.

    :param raw: Media type string, optionally with parameters
    :return: Normalized type string and parameters
    :raises MediaTypeError: if the string cannot be parsed
    """
    return Normalizer().normalize(raw)
