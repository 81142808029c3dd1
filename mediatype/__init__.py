import logging
from typing import Any, Mapping, Optional

from .core import MAIN_SUB_SPLIT_CHARACTER, SUFFIX_CHARACTER, TREE_SEPARATOR_CHARACTER
from .core import LazyMediaType, MediaType, MediaTypeError
from .normalize import Normalizer, normalize


__all__ = [
    'MAIN_SUB_SPLIT_CHARACTER', 'SUFFIX_CHARACTER', 'TREE_SEPARATOR_CHARACTER',
    'LazyMediaType', 'MediaType', 'MediaTypeError', 'Normalizer', 'normalize', 'parse',
]

logger = logging.getLogger(__name__)


def parse(raw: str, config: Optional[Mapping[str, Any]] = None) -> MediaType:
    """
    Parses a raw media type string into a :class:`~mediatype.core.MediaType`.

    >>> from mediatype import parse
    >>> media_type = parse('application/vnd.api+json; charset=utf-8')
    >>> media_type.trees, media_type.sub_type, media_type.suffix
    (('vnd',), 'api', 'json')

    :param raw: Media type string, optionally with parameters
    :type raw: str
    :param config: Settings for the :class:`~mediatype.normalize.Normalizer`
    :type config: Mapping or None
    :return: Media type whose parts are split on first access
    :rtype: MediaType
    :raises MediaTypeError: if the string cannot be parsed
    :raises TypeError: if the input is not a string
    """
    if not isinstance(raw, str):
        raise TypeError('Unable to parse media type of type %s' % type(raw).__qualname__)
    try:
        full_type, parameters = Normalizer(config).normalize(raw)
    except MediaTypeError as error:
        logger.debug('Rejected media type %r: %s', raw, error)
        raise
    return LazyMediaType(full_type, parameters)
