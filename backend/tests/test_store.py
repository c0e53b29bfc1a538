import pytest

from quizroom import db
from quizroom.models import StoreNode
from quizroom.store import MemoryStore, build_store, get_store, new_key
from quizroom.store.base import paths_overlap


@pytest.fixture()
def sql_store(flask_app):
    return get_store()


@pytest.fixture(params=['memory', 'sql'])
def any_store(request):
    if request.param == 'memory':
        return MemoryStore()
    return request.getfixturevalue('sql_store')


def test_subtree_reads(any_store):
    any_store.write('rooms/r1', {'name': 'One', 'code': 'AAA111'})
    any_store.write('rooms/r2', {'name': 'Two', 'code': 'BBB222'})

    assert any_store.read('rooms') == {
        'r1': {'name': 'One', 'code': 'AAA111'},
        'r2': {'name': 'Two', 'code': 'BBB222'},
    }
    assert any_store.read('rooms/r1/name') == 'One'
    assert any_store.read('/rooms//r2/') == {'name': 'Two', 'code': 'BBB222'}
    assert any_store.read('rooms/r3') is None


def test_update_merges_shallowly(any_store):
    any_store.write('rooms/r1', {'name': 'One', 'settings': {'a': 1}})
    any_store.update('rooms/r1', {'settings': {'b': 2}, 'isStarted': True})
    assert any_store.read('rooms/r1') == {'name': 'One', 'settings': {'b': 2}, 'isStarted': True}


def test_nested_write_edits_existing_value(any_store):
    any_store.write('players/p1', {'name': 'Alice', 'score': 10})
    any_store.write('players/p1/score', 25)
    assert any_store.read('players/p1') == {'name': 'Alice', 'score': 25}


def test_delete_clears_subtree(any_store):
    any_store.append('answers/r1', {'answer': 'a'})
    any_store.append('answers/r1', {'answer': 'b'})
    any_store.write('answers/r2/x', {'answer': 'c'})

    any_store.delete('answers/r1')

    assert any_store.read('answers/r1') is None
    assert any_store.read('answers') == {'r2': {'x': {'answer': 'c'}}}


def test_append_keys_sort_in_insertion_order(any_store):
    keys = [any_store.append('answers/r1', {'n': n}) for n in range(5)]
    stored = any_store.read('answers/r1')
    assert sorted(stored) == keys
    assert [stored[k]['n'] for k in sorted(stored)] == [0, 1, 2, 3, 4]


def test_transaction_applies_function(any_store):
    any_store.write('players/p1', {'score': 10})
    result = any_store.transaction('players/p1/score', lambda current: (current or 0) + 5)
    assert result == 15
    assert any_store.read('players/p1') == {'score': 15}


def test_transaction_abort_leaves_value(any_store):
    any_store.write('players/p1', {'score': 10})

    def refuse(current):
        current['score'] = 99
        raise RuntimeError('nope')

    with pytest.raises(RuntimeError):
        any_store.transaction('players/p1', refuse)
    assert any_store.read('players/p1') == {'score': 10}


def test_subscribe_sees_related_changes(any_store):
    seen = []
    unsubscribe = any_store.subscribe('rooms/r1', seen.append)

    any_store.write('rooms/r1', {'name': 'One'})
    any_store.write('rooms/r1/name', 'Uno')
    any_store.write('rooms/r2', {'name': 'Two'})
    any_store.delete('rooms')
    unsubscribe()
    any_store.write('rooms/r1', {'name': 'Again'})

    assert seen == [None, {'name': 'One'}, {'name': 'Uno'}, None]


def test_unchanged_transaction_does_not_notify(any_store):
    any_store.write('players/p1', {'score': 1})
    seen = []
    any_store.subscribe('players/p1', seen.append)
    any_store.transaction('players/p1', lambda current: current)
    assert len(seen) == 1


def test_failing_subscriber_does_not_block_writes(any_store):
    def broken(value):
        if value is not None:
            raise ValueError('boom')

    seen = []
    any_store.subscribe('rooms/r1', broken)
    any_store.subscribe('rooms/r1', seen.append)
    any_store.write('rooms/r1', {'name': 'One'})

    assert any_store.read('rooms/r1') == {'name': 'One'}
    assert seen == [None, {'name': 'One'}]


def test_snapshots_stream():
    store = MemoryStore()
    store.write('currentQuestions/r1', {'questionIndex': 0})
    stream = store.snapshots('currentQuestions/r1', timeout=0.05)

    assert next(stream) == {'questionIndex': 0}
    store.write('currentQuestions/r1', {'questionIndex': 1})
    assert next(stream) == {'questionIndex': 1}
    assert list(stream) == []
    assert store._subscribers == {}


def test_paths_overlap():
    assert paths_overlap('rooms', 'rooms/r1')
    assert paths_overlap('rooms/r1', 'rooms')
    assert paths_overlap('', 'anything')
    assert not paths_overlap('rooms/r1', 'rooms/r10')


def test_new_keys_are_ordered():
    keys = [new_key() for _ in range(20)]
    assert keys == sorted(keys)
    assert len(set(keys)) == 20


def test_sql_store_writes_one_row_per_path(sql_store):
    sql_store.write('rooms/r1', {'name': 'One', 'code': 'AAA111'})
    sql_store.write('rooms/r1/code', 'ZZZ999')
    assert [n.path for n in StoreNode.query.all()] == ['rooms/r1']

    sql_store.write('rooms', {'r9': {'name': 'Nine'}})
    assert [n.path for n in StoreNode.query.all()] == ['rooms']
    assert sql_store.read('rooms/r9/name') == 'Nine'


def test_sql_store_root(sql_store):
    sql_store.write('rooms/r1', {'name': 'One'})
    with pytest.raises(ValueError):
        sql_store.write('', {'rooms': {}})
    sql_store.delete('')
    assert sql_store.read('') is None
    assert db.session.query(StoreNode).count() == 0


def test_build_store_rejects_unknown_backend(flask_app):
    flask_app.config['STORE_BACKEND'] = 'redis'
    with pytest.raises(ValueError):
        build_store(flask_app, db)
    flask_app.config['STORE_BACKEND'] = 'memory'
    assert isinstance(build_store(flask_app, db), MemoryStore)
