from conftest import create_room, join_room, state


def test_heartbeat_refreshes_last_seen(client, frozen_clock):
    created = create_room(client, 'Alice')
    code = created['code']
    frozen_clock.advance(seconds=30)
    res = client.post(f'/api/rooms/{code}/heartbeat', json={'playerId': created['playerId']})
    assert res.status_code == 200
    assert res.get_json()['lastSeenAt'] == frozen_clock.now


def test_heartbeat_from_pruned_player_is_404(client):
    code = create_room(client, 'Alice')['code']
    res = client.post(f'/api/rooms/{code}/heartbeat', json={'playerId': 'gone'})
    assert res.status_code == 404


def test_prune_removes_only_silent_players(client, frozen_clock):
    created = create_room(client, 'Alice')
    code, host = created['code'], created['playerId']
    bob = join_room(client, code, 'Bob')['player']['id']
    cara = join_room(client, code, 'Cara')['player']['id']

    frozen_clock.advance(seconds=100)
    client.post(f'/api/rooms/{code}/heartbeat', json={'playerId': cara})
    frozen_clock.advance(seconds=30)

    res = client.post(f'/api/rooms/{code}/prune', json={'hostId': host})
    assert res.status_code == 200
    # The host itself is silent too but never prunes itself
    assert res.get_json()['removed'] == [bob]
    assert {p['name'] for p in state(client, code)['players']} == {'Alice', 'Cara'}


def test_prune_is_host_only(client, frozen_clock):
    created = create_room(client, 'Alice')
    code = created['code']
    bob = join_room(client, code, 'Bob')['player']['id']
    frozen_clock.advance(seconds=300)
    res = client.post(f'/api/rooms/{code}/prune', json={'hostId': bob})
    assert res.status_code == 403
    assert len(state(client, code)['players']) == 2


def test_pruned_player_can_rejoin(client, frozen_clock):
    created = create_room(client, 'Alice')
    code, host = created['code'], created['playerId']
    bob = join_room(client, code, 'Bob')['player']['id']
    frozen_clock.advance(seconds=121)
    client.post(f'/api/rooms/{code}/heartbeat', json={'playerId': host})
    client.post(f'/api/rooms/{code}/prune', json={'hostId': host})

    back = join_room(client, code, 'Bob', player_id=bob)
    assert back['player']['id'] == bob
    assert back['player']['is_host'] is False


def test_host_check_keeps_room_open_within_threshold(client, frozen_clock):
    created = create_room(client, 'Alice')
    code = created['code']
    bob = join_room(client, code, 'Bob')['player']['id']
    frozen_clock.advance(seconds=150)
    res = client.post(f'/api/rooms/{code}/host-check', json={'playerId': bob}).get_json()
    assert res['closed'] is False
    assert state(client, code)['room']['status'] == 'waiting'


def test_silent_host_closes_room(client, frozen_clock):
    created = create_room(client, 'Alice')
    code = created['code']
    bob = join_room(client, code, 'Bob')['player']['id']
    cara = join_room(client, code, 'Cara')['player']['id']
    frozen_clock.advance(seconds=151)

    res = client.post(f'/api/rooms/{code}/host-check', json={'playerId': bob}).get_json()
    assert res['closed'] is True
    assert state(client, code)['room']['status'] == 'closed'
    # A second observer arriving late sees the same outcome
    res = client.post(f'/api/rooms/{code}/host-check', json={'playerId': cara}).get_json()
    assert res['closed'] is True


def test_host_check_requires_membership(client):
    code = create_room(client, 'Alice')['code']
    res = client.post(f'/api/rooms/{code}/host-check', json={'playerId': 'outsider'})
    assert res.status_code == 404


def test_closed_room_absorbs_transitions(client, frozen_clock):
    created = create_room(client, 'Alice', 'flag')
    code, host = created['code'], created['playerId']
    bob = join_room(client, code, 'Bob')['player']['id']
    frozen_clock.advance(seconds=200)
    client.post(f'/api/rooms/{code}/host-check', json={'playerId': bob})

    session = client.post(f'/api/rooms/{code}/session/start', json={'hostId': host}).get_json()
    assert session['status'] == 'waiting'
