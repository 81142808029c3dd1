import abc
import threading
from typing import Any, Dict, Mapping, Optional, Tuple

from frozendict import frozendict


#: The character used to split the main and sub-types from a full type string
MAIN_SUB_SPLIT_CHARACTER = '/'

#: The character used to denote a suffix declaration
SUFFIX_CHARACTER = '+'

#: The character used to separate trees
TREE_SEPARATOR_CHARACTER = '.'


class MediaTypeError(ValueError):
    """
    Represents an error that is raised whenever a raw media type string cannot
    be normalized.
    """
    def __init__(self, message: str, raw: Optional[str] = None) -> None:
        """
        Initializes a new `MediaTypeError`.

        :param message: Description of the problem
        :param raw: The string that was rejected
        """
        super().__init__(message)
        self.raw = raw


class MediaType(metaclass=abc.ABCMeta):
    """
    Represents the structured form of a media type like
    ``application/vnd.api+json``.

    Implementations expose the normalized type string, its parameters, and
    the parts the type string consists of: main type, registration trees,
    sub-type, and structured syntax suffix.
    """
    @property
    @abc.abstractmethod
    def full_type(self) -> str:
        """
        The normalized type and sub-type, e.g. ``'application/vnd.api+json'``.
        """
        raise NotImplementedError()

    @property
    @abc.abstractmethod
    def parameters(self) -> Mapping[str, str]:
        """
        The parameters of the media type, e.g. ``{'charset': 'utf-8'}``.
        """
        raise NotImplementedError()

    @property
    @abc.abstractmethod
    def main_type(self) -> str:
        """
        The top-level type, e.g. ``'application'``.
        """
        raise NotImplementedError()

    @property
    @abc.abstractmethod
    def sub_type(self) -> str:
        """
        The sub-type without trees and suffix, e.g. ``'api'``.
        """
        raise NotImplementedError()

    @property
    @abc.abstractmethod
    def trees(self) -> Tuple[str, ...]:
        """
        The registration trees in front of the sub-type, e.g. ``('vnd',)``.
        """
        raise NotImplementedError()

    @property
    @abc.abstractmethod
    def suffix(self) -> str:
        """
        The structured syntax suffix, e.g. ``'json'``.
        """
        raise NotImplementedError()

    @property
    def prefix(self) -> str:
        """
        The first registration tree, or an empty string if there are none.
        """
        trees = self.trees
        if trees:
            return trees[0]
        return ''

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, MediaType):
            return self.full_type == other.full_type and \
                dict(self.parameters) == dict(other.parameters)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.full_type)


class LazyMediaType(MediaType):
    """
    Media type whose parts are split from the normalized type string on first
    access.

    The string is expected to be normalized already, i.e. lowercase and free
    of parameters. It is not validated: strings without separators simply
    result in empty parts.
    """
    def __init__(self, full_type: str, parameters: Optional[Mapping[str, str]] = None) -> None:
        """
        Initializes a new `LazyMediaType`.

        :param full_type: Normalized type string like ``'text/html'``
        :type full_type: str
        :param parameters: Parameters of the media type
        :type parameters: Mapping or None
        """
        self._full_type = full_type
        self._parameters = parameters if parameters is not None else frozendict()

        self._split_lock = threading.Lock()
        self._been_split = False
        self._main_type = ''
        self._trees = ()  # type: Tuple[str, ...]
        self._sub_type = ''
        self._suffix = ''

    @property
    def full_type(self) -> str:
        return self._full_type

    @property
    def parameters(self) -> Mapping[str, str]:
        return self._parameters

    @property
    def main_type(self) -> str:
        self._ensure_split()
        return self._main_type

    @property
    def sub_type(self) -> str:
        self._ensure_split()
        return self._sub_type

    @property
    def trees(self) -> Tuple[str, ...]:
        self._ensure_split()
        return self._trees

    @property
    def suffix(self) -> str:
        self._ensure_split()
        return self._suffix

    def _ensure_split(self) -> None:
        if self._been_split:
            return
        with self._split_lock:
            if not self._been_split:
                self._split_types()

    def _split_types(self) -> None:
        """
        Splits the full type string into its parts.

        Only the first suffix is kept if the sub-type contains several
        suffix characters.
        """
        main_sub_split = self._full_type.split(MAIN_SUB_SPLIT_CHARACTER, 1)
        self._main_type = main_sub_split[0]

        if len(main_sub_split) > 1:
            sub_suffix_split = main_sub_split[1].split(SUFFIX_CHARACTER)
            if len(sub_suffix_split) > 1:
                self._suffix = sub_suffix_split[1]

            tree_sub_split = sub_suffix_split[0].split(TREE_SEPARATOR_CHARACTER)
            self._sub_type = tree_sub_split[-1]
            if len(tree_sub_split) > 1:
                self._trees = tuple(tree_sub_split[:-1])

        self._been_split = True

    def __getstate__(self) -> Dict[str, Any]:
        state = self.__dict__.copy()
        del state['_split_lock']
        return state

    def __setstate__(self, state: Dict[str, Any]):
        """
        Sets this objects __dict__ to the specified state.

        Locks cannot be pickled or copied, so a new one is created for the
        restored object.

        :param state: The state passed by pickle
        """
        self.__dict__ = state
        self._split_lock = threading.Lock()

    def __repr__(self) -> str:
        return '%s(full_type=%r, parameters=%r)' % (
            self.__class__.__qualname__, self._full_type, dict(self._parameters))
