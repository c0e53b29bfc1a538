import pytest

from conftest import QUESTIONS, engine_for, registry_for
from quizroom.errors import NotFound, PermissionDenied, ValidationError
from quizroom.identity import StaticIdentity
from quizroom.services import PlayerRegistry
from quizroom.services import rooms as rooms_module


def test_join_creates_fresh_player(store, published_room):
    player = registry_for(store, 'guest:alice').join_room(published_room['code'].lower(), 'Alice')

    assert player['roomId'] == published_room['id']
    assert player['userId'] == 'guest:alice'
    assert (player['score'], player['isReady'], player['isOnline']) == (0, False, True)
    assert store.read(f"players/{player['id']}") == player


def test_join_unknown_code(store, published_room):
    with pytest.raises(NotFound):
        registry_for(store, 'guest:alice').join_room('ZZZZZZ', 'Alice')


def test_join_requires_a_name(store, published_room):
    with pytest.raises(ValidationError):
        registry_for(store, 'guest:alice').join_room(published_room['code'], '   ')


def test_join_requires_permission(store, published_room):
    registry = PlayerRegistry(store, StaticIdentity('guest:banned'))
    with pytest.raises(PermissionDenied):
        registry.join_room(published_room['code'], 'Mallory')


def test_join_unpublished_room(store, rooms):
    room = rooms.create_room('Draft', 4)
    rooms.add_question(room['id'], QUESTIONS[0])
    with pytest.raises(ValidationError):
        registry_for(store, 'guest:alice').join_room(room['code'], 'Alice')


def test_join_full_room(store, rooms):
    room = rooms.create_room('Duel', 1)
    rooms.add_question(room['id'], QUESTIONS[0])
    rooms.publish_room(room['id'])
    registry_for(store, 'guest:alice').join_room(room['code'], 'Alice')

    with pytest.raises(ValidationError, match='full'):
        registry_for(store, 'guest:bob').join_room(room['code'], 'Bob')


def test_offline_players_free_their_seat(store, rooms):
    room = rooms.create_room('Duel', 1)
    rooms.add_question(room['id'], QUESTIONS[0])
    rooms.publish_room(room['id'])
    alice_registry = registry_for(store, 'guest:alice')
    alice = alice_registry.join_room(room['code'], 'Alice')
    alice_registry.leave_room(alice['id'])

    bob = registry_for(store, 'guest:bob').join_room(room['code'], 'Bob')
    assert bob['isOnline'] is True


def test_new_players_cannot_join_started_quiz(store, started_room):
    with pytest.raises(ValidationError, match='already started'):
        registry_for(store, 'guest:carol').join_room(started_room['room']['code'], 'Carol')


def test_rejoin_preserves_identity_and_score(store, engine, started_room):
    room = started_room['room']
    alice = started_room['alice']
    registry = registry_for(store, 'guest:alice')
    engine.publish_question(room['id'], 0, 100, 'time-based', 30)
    engine_for(store, 'guest:alice').submit_answer(alice['id'], 'Paris', 1)

    left = registry.leave_room(alice['id'])
    assert left['isOnline'] is False
    assert store.read(f"players/{alice['id']}") is not None

    back = registry.join_room(room['code'], 'Alice B.')

    assert back['id'] == alice['id']
    assert back['score'] == 100
    assert back['name'] == 'Alice B.'
    assert back['isOnline'] is True
    assert back['rejoinedAt']
    assert len(registry.list_players(room['id'])) == 2


def test_set_player_ready(store, started_room):
    registry = registry_for(store, 'guest:bob')
    player = registry.set_player_ready(started_room['bob']['id'], True)
    assert player['isReady'] is True
    with pytest.raises(NotFound):
        registry.set_player_ready('player_missing', True)


def test_leave_unknown_player(store, published_room):
    with pytest.raises(NotFound):
        registry_for(store, 'guest:alice').leave_room('player_missing')


def test_can_rejoin(store, started_room):
    code = started_room['room']['code']
    assert registry_for(store, 'guest:alice').can_rejoin(code) == {
        'canRejoin': True, 'playerName': 'Alice', 'playerId': started_room['alice']['id'],
    }
    newcomer = registry_for(store, 'guest:carol').can_rejoin(code)
    assert newcomer['canRejoin'] is False
    assert newcomer['message']
    assert registry_for(store, 'guest:carol').can_rejoin('NOPE00')['canRejoin'] is False


def test_reused_code_resolves_to_the_open_room(store, rooms, started_room, monkeypatch):
    finished = started_room['room']
    rooms.end_quiz(finished['id'])
    monkeypatch.setattr(rooms_module.random, 'choices', lambda population, k: list(finished['code']))
    fresh = rooms.create_room('Rematch', 4)
    rooms.add_question(fresh['id'], QUESTIONS[0])
    rooms.publish_room(fresh['id'])
    assert fresh['code'] == finished['code']

    zed = registry_for(store, 'guest:zed').join_room(fresh['code'], 'Zed')
    assert zed['roomId'] == fresh['id']

    alice = registry_for(store, 'guest:alice').join_room(fresh['code'], 'Alice')
    assert alice['roomId'] == fresh['id']
    assert alice['id'] != started_room['alice']['id']
