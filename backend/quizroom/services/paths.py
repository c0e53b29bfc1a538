ROOMS = 'rooms'
PLAYERS = 'players'
CONTESTS = 'contests'


def room(room_id):
    return f'rooms/{room_id}'


def player(player_id):
    return f'players/{player_id}'


def current_question(room_id):
    return f'currentQuestions/{room_id}'


def answers(room_id):
    return f'answers/{room_id}'


def round_statistics(room_id):
    return f'roundStatistics/{room_id}'


def question_settings(room_id, index=None):
    if index is None:
        return f'questionSettings/{room_id}'
    return f'questionSettings/{room_id}/{index}'


def contest(contest_id):
    return f'contests/{contest_id}'
