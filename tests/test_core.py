import copy
import pickle
import threading
import unittest.mock

import pytest
from frozendict import frozendict

from mediatype.core import LazyMediaType, MediaType


def _reconstruct(media_type):
    tree_part = ''.join(tree + '.' for tree in media_type.trees)
    suffix_part = '+' + media_type.suffix if media_type.suffix else ''
    return media_type.main_type + '/' + tree_part + media_type.sub_type + suffix_part


def test_lazy_media_type_is_a_media_type():
    assert isinstance(LazyMediaType('text/plain'), MediaType)


def test_media_type_cannot_be_instantiated():
    with pytest.raises(TypeError):
        MediaType()


def test_lazy_media_type_splits_simple_type():
    media_type = LazyMediaType('application/json')

    assert media_type.main_type == 'application'
    assert media_type.sub_type == 'json'
    assert media_type.trees == ()
    assert media_type.suffix == ''
    assert media_type.prefix == ''


def test_lazy_media_type_splits_trees_and_suffix():
    media_type = LazyMediaType('application/vnd.api+json')

    assert media_type.main_type == 'application'
    assert media_type.trees == ('vnd',)
    assert media_type.sub_type == 'api'
    assert media_type.suffix == 'json'
    assert media_type.prefix == 'vnd'


def test_lazy_media_type_splits_multiple_trees():
    media_type = LazyMediaType('application/vnd.criticalstack.swift.plus.v1')

    assert media_type.trees == ('vnd', 'criticalstack', 'swift', 'plus')
    assert media_type.sub_type == 'v1'
    assert media_type.suffix == ''
    assert media_type.prefix == 'vnd'


def test_lazy_media_type_without_slash_only_has_main_type():
    media_type = LazyMediaType('textonly')

    assert media_type.main_type == 'textonly'
    assert media_type.sub_type == ''
    assert media_type.trees == ()
    assert media_type.suffix == ''
    assert media_type.prefix == ''


def test_lazy_media_type_keeps_only_first_suffix():
    media_type = LazyMediaType('application/vnd.foo+json+zip+gzip')

    assert media_type.trees == ('vnd',)
    assert media_type.sub_type == 'foo'
    assert media_type.suffix == 'json'


def test_lazy_media_type_keeps_further_slashes_in_sub_type():
    media_type = LazyMediaType('foo/bar/baz')

    assert media_type.main_type == 'foo'
    assert media_type.sub_type == 'bar/baz'


def test_lazy_media_type_keeps_empty_segments():
    media_type = LazyMediaType('application/.foo+')

    assert media_type.trees == ('',)
    assert media_type.sub_type == 'foo'
    assert media_type.suffix == ''


@pytest.mark.parametrize('full_type', [
    'application/json',
    'application/vnd.api+json',
    'application/vnd.criticalstack.swift.plus.v1',
    'image/svg+xml',
    'application/prs.foo.bar+xml',
    'text/x.custom',
])
def test_lazy_media_type_parts_reconstruct_full_type(full_type):
    media_type = LazyMediaType(full_type)

    assert _reconstruct(media_type) == media_type.full_type


@pytest.mark.parametrize('full_type', ['application/json', 'application/x.y.z+ber', 'textonly'])
def test_prefix_is_first_tree(full_type):
    media_type = LazyMediaType(full_type)

    if media_type.trees:
        assert media_type.prefix == media_type.trees[0]
    else:
        assert media_type.prefix == ''


def test_full_type_is_returned_verbatim():
    media_type = LazyMediaType('Not/Normalized; at=all')

    assert media_type.full_type == 'Not/Normalized; at=all'


def test_parameters_default_to_empty_mapping():
    media_type = LazyMediaType('text/plain')

    assert media_type.parameters == {}
    assert isinstance(media_type.parameters, frozendict)


def test_parameters_are_returned_before_and_after_split():
    parameters = frozendict(charset='utf-8')
    media_type = LazyMediaType('text/plain', parameters)

    assert media_type.parameters is parameters
    assert media_type.sub_type == 'plain'
    assert media_type.parameters is parameters
    assert media_type.parameters == {'charset': 'utf-8'}


def test_accessors_return_identical_results_on_repeated_calls():
    media_type = LazyMediaType('application/vnd.api+json')

    first = (media_type.main_type, media_type.sub_type, media_type.trees, media_type.suffix, media_type.prefix)
    second = (media_type.main_type, media_type.sub_type, media_type.trees, media_type.suffix, media_type.prefix)

    assert first == second


def test_split_is_deferred_until_first_access():
    with unittest.mock.patch.object(LazyMediaType, '_split_types', autospec=True,
                                    side_effect=LazyMediaType._split_types) as split_types:
        media_type = LazyMediaType('application/vnd.api+json')
        media_type.full_type
        media_type.parameters

        assert split_types.call_count == 0


def test_split_runs_only_once():
    with unittest.mock.patch.object(LazyMediaType, '_split_types', autospec=True,
                                    side_effect=LazyMediaType._split_types) as split_types:
        media_type = LazyMediaType('application/vnd.api+json')
        media_type.main_type
        media_type.sub_type
        media_type.trees
        media_type.prefix
        media_type.suffix

        assert split_types.call_count == 1


def test_split_runs_only_once_with_concurrent_access():
    media_type = LazyMediaType('application/vnd.criticalstack.swift.plus.v1+json')
    start = threading.Barrier(8)
    results = []

    def read_parts():
        start.wait()
        results.append((media_type.main_type, media_type.trees, media_type.sub_type, media_type.suffix))

    with unittest.mock.patch.object(LazyMediaType, '_split_types', autospec=True,
                                    side_effect=LazyMediaType._split_types) as split_types:
        threads = [threading.Thread(target=read_parts) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert split_types.call_count == 1
    assert set(results) == {('application', ('vnd', 'criticalstack', 'swift', 'plus'), 'v1', 'json')}


@pytest.mark.parametrize('split_before', [False, True])
def test_lazy_media_type_can_be_pickled(split_before):
    media_type = LazyMediaType('application/vnd.api+json', frozendict(charset='utf-8'))
    if split_before:
        media_type.sub_type

    unpickled = pickle.loads(pickle.dumps(media_type))

    assert unpickled == media_type
    assert unpickled.trees == ('vnd',)
    assert unpickled.sub_type == 'api'
    assert unpickled.suffix == 'json'


def test_lazy_media_type_can_be_deep_copied():
    media_type = LazyMediaType('application/vnd.api+json', frozendict(charset='utf-8'))

    copied = copy.deepcopy(media_type)

    assert copied == media_type
    assert copied.prefix == 'vnd'
    assert copied._split_lock is not media_type._split_lock


def test_media_types_with_equal_type_and_parameters_are_equal():
    media_type1 = LazyMediaType('text/plain', frozendict(charset='utf-8'))
    media_type2 = LazyMediaType('text/plain', {'charset': 'utf-8'})

    assert media_type1 == media_type2
    assert hash(media_type1) == hash(media_type2)


def test_media_types_with_different_parameters_are_not_equal():
    media_type1 = LazyMediaType('text/plain', frozendict(charset='utf-8'))
    media_type2 = LazyMediaType('text/plain')

    assert media_type1 != media_type2
    assert media_type1 != 'text/plain'


def test_lazy_media_type_has_string_representation():
    media_type = LazyMediaType('text/plain', frozendict(charset='utf-8'))

    assert repr(media_type) == "LazyMediaType(full_type='text/plain', parameters={'charset': 'utf-8'})"
