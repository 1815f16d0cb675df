from conftest import NAMESPACE, received_messages, send_envelope


def test_socket_connect_registers(connect, shared_lobby):
    sio_client = connect()
    assert sio_client.is_connected(NAMESPACE)
    assert shared_lobby.stats()['connections'] == 1


def test_create_and_join_by_code(connect):
    host = connect()
    guest = connect()

    send_envelope(host, {'type': 'createRoom'})
    created = received_messages(host)
    assert [m['type'] for m in created] == ['roomCreated']
    room_id = created[0]['roomId']

    send_envelope(guest, {'type': 'joinRoom', 'roomId': room_id, 'character': 'foo'})
    host_msgs = received_messages(host)
    guest_msgs = received_messages(guest)

    assert [m['type'] for m in host_msgs] == ['playerJoined', 'gameStart']
    assert [m['type'] for m in guest_msgs] == ['playerJoined', 'gameStart']
    assert host_msgs[0]['character'] == 'foo'
    assert host_msgs[0]['playerId'] == guest_msgs[0]['playerId']


def test_join_missing_room(connect):
    host = connect()
    stranger = connect()
    send_envelope(host, {'type': 'createRoom'})
    received_messages(host)

    send_envelope(stranger, {'type': 'joinRoom', 'roomId': 'NOPE'})

    assert received_messages(stranger) == [{'type': 'error', 'message': 'Room not found'}]
    assert received_messages(host) == []


def test_join_full_room(connect):
    a, b, d = connect(), connect(), connect()
    send_envelope(a, {'type': 'createRoom'})
    room_id = received_messages(a)[0]['roomId']
    send_envelope(b, {'type': 'joinRoom', 'roomId': room_id})
    received_messages(a)
    received_messages(b)

    send_envelope(d, {'type': 'joinRoom', 'roomId': room_id})

    assert received_messages(d) == [{'type': 'error', 'message': 'Room is full'}]
    assert received_messages(a) == []
    assert received_messages(b) == []


def test_game_state_relay_and_isolation(connect):
    a, b, c, d = connect(), connect(), connect(), connect()
    for host, guest in ((a, b), (c, d)):
        send_envelope(host, {'type': 'createRoom'})
        room_id = received_messages(host)[0]['roomId']
        send_envelope(guest, {'type': 'joinRoom', 'roomId': room_id})
        received_messages(host)
        received_messages(guest)

    send_envelope(a, {'type': 'gameState', 'position': [3, 4]})

    to_b = received_messages(b)
    assert len(to_b) == 1
    assert to_b[0]['type'] == 'gameState'
    assert to_b[0]['position'] == [3, 4]
    assert to_b[0]['playerId'].startswith('player_')
    assert received_messages(a) == []
    assert received_messages(c) == []
    assert received_messages(d) == []


def test_invalid_message_keeps_connection(connect):
    sio_client = connect()
    sio_client.send('this is not json', namespace=NAMESPACE)
    assert received_messages(sio_client) == [{'type': 'error', 'message': 'Invalid message format'}]
    assert sio_client.is_connected(NAMESPACE)

    send_envelope(sio_client, {'type': 'somethingNew'})
    assert received_messages(sio_client) == []

    send_envelope(sio_client, {'type': 'createRoom'})
    assert received_messages(sio_client)[0]['type'] == 'roomCreated'


def test_disconnect_notifies_peer_and_cleans_up(connect, shared_lobby):
    a, b = connect(), connect()
    send_envelope(a, {'type': 'createRoom'})
    room_id = received_messages(a)[0]['roomId']
    send_envelope(b, {'type': 'joinRoom', 'roomId': room_id})
    joined = received_messages(a)
    received_messages(b)
    b_player = joined[0]['playerId']

    b.disconnect(namespace=NAMESPACE)
    assert received_messages(a) == [{'type': 'playerLeft', 'playerId': b_player}]
    assert shared_lobby.rooms.get_room(room_id).size == 1

    a.disconnect(namespace=NAMESPACE)
    assert shared_lobby.rooms.get_room(room_id) is None
    assert shared_lobby.stats()['connections'] == 0


def test_disconnect_before_joining(connect, shared_lobby):
    lurker = connect()
    lurker.disconnect(namespace=NAMESPACE)
    assert shared_lobby.stats() == {'rooms': 0, 'players': 0, 'connections': 0, 'waiting': 0}


def test_find_match_flow(match_connect):
    first = match_connect()
    second = match_connect()

    send_envelope(first, {'type': 'findMatch'})
    assert received_messages(first) == [{'type': 'waitingForMatch'}]

    send_envelope(second, {'type': 'findMatch'})
    first_found = received_messages(first)
    second_found = received_messages(second)
    assert [m['type'] for m in first_found] == ['matchFound']
    assert [m['type'] for m in second_found] == ['matchFound']
    assert first_found[0]['roomId'] == second_found[0]['roomId']
    assert {first_found[0]['isPlayer1'], second_found[0]['isPlayer1']} == {True, False}

    send_envelope(second, {'type': 'specialAttack', 'damage': 30})
    attack = received_messages(first)
    assert attack[0]['type'] == 'specialAttack'
    assert attack[0]['damage'] == 30
    assert attack[0]['playerId'] == second_found[0]['playerId']

    second.disconnect(namespace=NAMESPACE)
    assert received_messages(first) == [
        {'type': 'playerDisconnected', 'playerId': second_found[0]['playerId']}
    ]


def test_waiter_disconnect_leaves_pool(match_connect, shared_lobby):
    waiter = match_connect()
    send_envelope(waiter, {'type': 'findMatch'})
    assert shared_lobby.stats()['waiting'] == 1
    waiter.disconnect(namespace=NAMESPACE)
    assert shared_lobby.stats()['waiting'] == 0

    late = match_connect()
    send_envelope(late, {'type': 'findMatch'})
    assert received_messages(late) == [{'type': 'waitingForMatch'}]
