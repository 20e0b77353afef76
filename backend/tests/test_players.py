from scoreboard.services.games import hierarchy as hier
from scoreboard.services.games import players as pl


def test_split_and_anonymous_ids():
    entry = pl.make_anonymous_id('u1', 'Sam')
    assert entry == 'u1:Sam'
    assert pl.split_player_id(entry) == ('u1', 'Sam')
    assert pl.split_player_id('u1') == ('u1', None)
    assert pl.is_anonymous(entry)
    assert not pl.is_anonymous('u1')
    assert pl.is_guest_id('guest_123')


def test_user_in_game_matches_exact_or_prefix():
    ids = ['u1:Sam', 'u22', 'Bob']
    assert pl.user_in_game('u1', ids)
    assert pl.user_in_game('u22', ids)
    assert not pl.user_in_game('u2', ids)
    assert pl.find_player_entry('u1', ids) == 'u1:Sam'


def test_display_name():
    usernames = {'u22': 'carol'}
    assert pl.display_name('u22', usernames) == 'carol'
    assert pl.display_name('u1:Sam', usernames) == 'Sam'
    assert pl.display_name('Bob') == 'Bob'
    assert pl.display_name('0123456789abcdef') == '01234567'


def test_ids_needing_lookup_dedupes():
    assert pl.ids_needing_lookup(['u1:Sam', 'u1', 'Bob']) == ['Bob', 'u1']


def test_hierarchy_round_trip_and_queries():
    tree = hier.add_child({}, 'u1:Sam', 'Reds')
    tree = hier.add_child(tree, 'u2', 'Reds')
    tree = hier.add_child(tree, 'u3', 'Blues')
    assert hier.decode(hier.encode(tree)) == tree
    assert hier.encode({}) is None
    assert hier.is_parent(tree, 'Reds')
    assert hier.children_of(tree, 'Reds') == ['u1:Sam', 'u2']
    assert hier.parent_of(tree, 'u1') == 'Reds'
    assert hier.is_child(tree, 'u3')
    assert hier.score_owner(tree, 'u2') == 'Reds'
    assert hier.score_owner(tree, 'Blues') == 'Blues'

    trimmed = hier.remove_child(tree, 'u2', 'Reds')
    assert trimmed['Reds'] == ['u1:Sam']
    assert tree['Reds'] == ['u1:Sam', 'u2']


def test_score_permissions():
    tree = {'Reds': ['u1:Sam'], 'Blues': ['u3']}
    assert hier.can_user_edit_scores(tree, 'Reds', 'u1')
    assert not hier.can_user_edit_scores(tree, 'Blues', 'u1')
    assert hier.can_user_edit_scores({}, 'u1:Sam', 'u1')
    assert not hier.can_user_edit_scores({}, 'u10', 'u1')


def test_score_editable_players_and_labels():
    tree = {'Blues': ['u3'], 'Reds': ['u1', 'u2']}
    assert hier.score_editable_players(tree, ['Reds', 'Blues']) == ['Reds', 'Blues']
    assert hier.score_editable_players({}, ['a', 'b']) == ['a', 'b']
    assert hier.player_display_name(tree, 'Reds') == 'Reds (2 players)'
    assert hier.player_display_name(tree, 'u1', 'Sam') == 'Sam'
    assert hier.participating_users(tree, ['Reds', 'Blues']) == ['Reds', 'Blues', 'u3', 'u1', 'u2']
