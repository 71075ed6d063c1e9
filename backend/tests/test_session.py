import json

import pytest

from conftest import FLAGS, PRICES, create_room, join_room, state


def _two_player_flag_room(client, **settings):
    created = create_room(client, 'Alice', 'flag', {'rounds': 5, 'roundDurationMs': 15000, **settings})
    code = created['code']
    bob = join_room(client, code, 'Bob')['player']
    return code, created['playerId'], bob['id']


def _start(client, code, host_id, challenges=FLAGS):
    res = client.post(f'/api/rooms/{code}/session/start', json={'hostId': host_id, 'challenges': challenges})
    assert res.status_code == 200
    return res.get_json()


def _answer(client, code, player_id, answer):
    return client.post(f'/api/rooms/{code}/session/answer', json={'playerId': player_id, 'answer': answer})


def test_start_opens_round_one_with_absolute_deadline(client, frozen_clock):
    code, host, _ = _two_player_flag_room(client)
    session = _start(client, code, host)
    assert session['status'] == 'round_active'
    assert session['current_round'] == 1
    assert session['total_rounds'] == 5
    assert session['answers'] == {}
    round_data = session['round_data']
    assert round_data['gameType'] == 'flag'
    assert round_data['startTime'] == frozen_clock.now
    assert round_data['endTime'] == round_data['startTime'] + 15000
    assert round_data['challenge']['name'] == 'France'
    assert [c['name'] for c in round_data['queue']] == ['Japan', 'Peru']
    assert state(client, code)['room']['status'] == 'in_game'


def test_start_is_host_only(client):
    code, _, bob = _two_player_flag_room(client)
    res = client.post(f'/api/rooms/{code}/session/start', json={'hostId': bob, 'challenges': FLAGS})
    assert res.status_code == 403
    assert state(client, code)['session']['status'] == 'waiting'


def test_start_without_game_type_is_rejected(client):
    created = create_room(client, 'Alice', game_type=None)
    res = client.post(f"/api/rooms/{created['code']}/session/start",
                      json={'hostId': created['playerId'], 'challenges': FLAGS})
    assert res.status_code == 400


def test_start_twice_is_idempotent(client):
    code, host, _ = _two_player_flag_room(client)
    first = _start(client, code, host)
    second = _start(client, code, host, challenges=list(reversed(FLAGS)))
    assert second['round_data']['challenge'] == first['round_data']['challenge']
    assert second['version'] == first['version']


def test_start_rejects_malformed_challenges(client):
    code, host, _ = _two_player_flag_room(client)
    res = client.post(f'/api/rooms/{code}/session/start', json={'hostId': host, 'challenges': [{'flagUrl': 'x'}]})
    assert res.status_code == 400
    assert 'name' in res.get_json()['error']


def test_all_answers_in_ends_round_early(client, frozen_clock):
    code, host, bob = _two_player_flag_room(client)
    _start(client, code, host)

    frozen_clock.advance(ms=1000)
    # Not everyone has answered and the deadline is far off
    assert _answer(client, code, host, 'france').status_code == 200
    res = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host})
    assert res.status_code == 400

    frozen_clock.advance(ms=1000)
    res = _answer(client, code, bob, 'Japon')
    assert res.get_json() == {'success': True, 'answers': 2}

    session = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host}).get_json()
    assert session['status'] == 'round_results'
    results = session['round_data']['results']
    assert results[0]['playerId'] == host
    assert results[0]['correct'] is True
    assert results[0]['score'] == 100
    assert results[1]['correct'] is False
    assert results[1]['score'] == 0

    players = {p['id']: p for p in state(client, code)['players']}
    assert players[host]['score'] == 100
    assert players[bob]['score'] == 0


def test_deadline_ends_round_without_all_answers(client, frozen_clock):
    code, host, _ = _two_player_flag_room(client)
    _start(client, code, host)
    frozen_clock.advance(ms=15000)
    session = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host}).get_json()
    assert session['status'] == 'round_results'
    assert all(r['score'] == 0 for r in session['round_data']['results'])


def test_answers_after_deadline_are_rejected(client, frozen_clock):
    code, host, _ = _two_player_flag_room(client)
    _start(client, code, host)
    frozen_clock.advance(ms=15001)
    res = _answer(client, code, host, 'France')
    assert res.status_code == 400


def test_answer_resubmission_overwrites(client, frozen_clock):
    code, host, _ = _two_player_flag_room(client)
    _start(client, code, host)
    _answer(client, code, host, 'Japan')
    frozen_clock.advance(ms=500)
    res = _answer(client, code, host, 'France')
    assert res.get_json()['answers'] == 1
    answers = state(client, code)['session']['answers']
    assert answers[host]['answer'] == 'France'


def test_answer_validation(client):
    code, host, _ = _two_player_flag_room(client)
    assert _answer(client, code, host, 'France').status_code == 400  # still waiting
    _start(client, code, host)
    assert _answer(client, code, host, '   ').status_code == 400
    assert _answer(client, code, host, ['France']).status_code == 400
    assert _answer(client, code, 'stranger', 'France').status_code == 404


def test_next_round_clears_answers_and_pops_queue(client, frozen_clock):
    code, host, bob = _two_player_flag_room(client)
    _start(client, code, host)
    _answer(client, code, host, 'France')
    _answer(client, code, bob, 'France')
    client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host})

    frozen_clock.advance(seconds=3)
    session = client.post(f'/api/rooms/{code}/session/next', json={'hostId': host}).get_json()
    assert session['status'] == 'round_active'
    assert session['current_round'] == 2
    assert session['answers'] == {}
    assert session['round_data']['challenge']['name'] == 'Japan'
    assert session['round_data']['startTime'] == frozen_clock.now
    assert 'results' not in session['round_data']


def test_next_round_requires_results_first(client):
    code, host, _ = _two_player_flag_room(client)
    _start(client, code, host)
    res = client.post(f'/api/rooms/{code}/session/next', json={'hostId': host})
    assert res.status_code == 400


def test_last_round_finishes_game(client, frozen_clock):
    created = create_room(client, 'Alice', 'flag', {'rounds': 2})
    code, host = created['code'], created['playerId']
    _start(client, code, host)
    for _ in range(2):
        _answer(client, code, host, 'France')
        ended = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host}).get_json()
        assert ended['status'] == 'round_results'
        session = client.post(f'/api/rooms/{code}/session/next', json={'hostId': host}).get_json()

    assert session['status'] == 'game_over'
    assert session['current_round'] == 2
    assert state(client, code)['room']['status'] == 'finished'

    # Absorbing: further transitions change nothing
    again = client.post(f'/api/rooms/{code}/session/next', json={'hostId': host}).get_json()
    assert again == session
    again = client.post(f'/api/rooms/{code}/session/start', json={'hostId': host, 'challenges': FLAGS}).get_json()
    assert again['status'] == 'game_over'
    assert _answer(client, code, host, 'France').status_code == 400


def test_stale_expected_version_is_rejected(client):
    code, host, _ = _two_player_flag_room(client)
    session = state(client, code)['session']
    res = client.post(f'/api/rooms/{code}/session/start', json={
        'hostId': host, 'challenges': FLAGS, 'expectedVersion': session['version'] + 1,
    })
    assert res.status_code == 409
    assert res.get_json()['version'] == session['version']

    res = client.post(f'/api/rooms/{code}/session/start', json={
        'hostId': host, 'challenges': FLAGS, 'expectedVersion': session['version'],
    })
    assert res.status_code == 200


def test_update_settings(client):
    code, host, bob = _two_player_flag_room(client)
    room = state(client, code)['room']

    res = client.post(f'/api/rooms/{code}/settings', json={
        'hostId': bob, 'settings': {'rounds': 3}, 'expectedVersion': room['version'],
    })
    assert res.status_code == 403

    res = client.post(f'/api/rooms/{code}/settings', json={
        'hostId': host, 'gameType': 'price', 'settings': {'rounds': 3, 'category': 'tech'},
        'expectedVersion': room['version'],
    })
    assert res.status_code == 200
    updated = res.get_json()
    assert updated['game_type'] == 'price'
    assert updated['settings']['gameType'] == 'price'
    assert updated['settings']['tolerance'] == 10
    assert updated['version'] == room['version'] + 1
    assert state(client, code)['session']['total_rounds'] == 3

    # A second write based on the old version loses
    res = client.post(f'/api/rooms/{code}/settings', json={
        'hostId': host, 'settings': {'rounds': 4}, 'expectedVersion': room['version'],
    })
    assert res.status_code == 409


def test_update_settings_validates_shape(client):
    code, host, _ = _two_player_flag_room(client)
    res = client.post(f'/api/rooms/{code}/settings', json={'hostId': host, 'settings': {'rounds': 0}})
    assert res.status_code == 400
    assert 'rounds' in res.get_json()['error']


def test_price_round_scores_by_band(client, frozen_clock):
    created = create_room(client, 'Alice', 'price', {'rounds': 2})
    code, host = created['code'], created['playerId']
    bob = join_room(client, code, 'Bob')['player']['id']
    cara = join_room(client, code, 'Cara')['player']['id']
    _start(client, code, host, challenges=PRICES)

    frozen_clock.advance(ms=2000)
    _answer(client, code, host, 103)
    frozen_clock.advance(ms=4000)
    _answer(client, code, bob, '85')
    _answer(client, code, cara, 'cheap')

    session = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host}).get_json()
    results = session['round_data']['results']
    assert [r['playerId'] for r in results] == [host, bob, cara]
    assert results[0]['score'] == 1200
    assert results[0]['timeBonus'] == 200
    assert results[0]['difference'] == 3
    assert results[1]['score'] == 300
    assert results[1]['timeBonus'] == 0
    assert results[2]['score'] == 0


def test_partial_settings_update_keeps_other_values(client):
    code, host, _ = _two_player_flag_room(client, region='Europe')
    res = client.post(f'/api/rooms/{code}/settings', json={'hostId': host, 'settings': {'rounds': 2}})
    settings = res.get_json()['settings']
    assert settings['rounds'] == 2
    assert settings['region'] == 'Europe'
    assert settings['roundDurationMs'] == 15000


def _strict_json(res):
    def refuse(constant):
        raise ValueError(f'non-standard JSON constant {constant}')

    return json.loads(res.get_data(as_text=True), parse_constant=refuse)


def _raw_answer(client, code, player_id, raw_answer):
    body = '{"playerId": "%s", "answer": %s}' % (player_id, raw_answer)
    return client.post(f'/api/rooms/{code}/session/answer', data=body, content_type='application/json')


@pytest.mark.parametrize('game_type, challenges', [('flag', FLAGS), ('price', PRICES)])
@pytest.mark.parametrize('raw_answer', ['1' + '0' * 400, 'NaN', 'Infinity'])
def test_non_finite_numbers_are_rejected(client, frozen_clock, game_type, challenges, raw_answer):
    created = create_room(client, 'Alice', game_type)
    code, host = created['code'], created['playerId']
    _start(client, code, host, challenges=challenges)

    res = _raw_answer(client, code, host, raw_answer)
    assert res.status_code == 400
    assert state(client, code)['session']['answers'] == {}

    # The round still closes normally
    assert _answer(client, code, host, 42).status_code == 200
    res = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host})
    assert res.status_code == 200
    assert _strict_json(res)['status'] == 'round_results'


@pytest.mark.parametrize('answer', ['nan', 'inf', '-Infinity', '1e400'])
def test_non_finite_text_scores_zero_with_clean_json(client, frozen_clock, answer):
    created = create_room(client, 'Alice', 'price')
    code, host = created['code'], created['playerId']
    bob = join_room(client, code, 'Bob')['player']['id']
    _start(client, code, host, challenges=PRICES)
    _answer(client, code, host, answer)
    _answer(client, code, bob, 100)

    res = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host})
    assert res.status_code == 200
    results = _strict_json(res)['round_data']['results']
    assert [r['playerId'] for r in results] == [bob, host]
    assert results[1]['answer'] == answer
    assert results[1]['score'] == 0
    assert 'difference' not in results[1]
    assert _strict_json(client.get(f'/api/rooms/{code}/state'))['players']


def test_large_integer_answer_on_exact_match_round(client, frozen_clock):
    code, host, bob = _two_player_flag_room(client)
    _start(client, code, host)
    _answer(client, code, host, 10 ** 15)
    _answer(client, code, bob, 'France')
    session = client.post(f'/api/rooms/{code}/session/end-round', json={'hostId': host}).get_json()
    assert session['status'] == 'round_results'
    assert session['round_data']['results'][1]['answer'] == 10 ** 15
