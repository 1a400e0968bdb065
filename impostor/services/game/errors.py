class DomainError(Exception):
    """A rule of the game was broken by the requested action.

    Carries a stable ``code`` for clients; room state is left untouched.
    """

    code = 'DOMAIN_ERROR'

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class RoomNotFoundError(DomainError):
    code = 'ROOM_NOT_FOUND'

    def __init__(self):
        super().__init__('Room not found')


class MaxRoomsReachedError(DomainError):
    code = 'MAX_ROOMS_REACHED'

    def __init__(self):
        super().__init__('Maximum number of rooms reached')


class NotAdminError(DomainError):
    code = 'NOT_ADMIN'

    def __init__(self):
        super().__init__('Only admin can perform this action')


class NotEnoughPlayersError(DomainError):
    code = 'NOT_ENOUGH_PLAYERS'

    def __init__(self, required, what='players'):
        super().__init__(f'At least {required} {what} required')
        self.required = required


class GameAlreadyStartedError(DomainError):
    code = 'GAME_ALREADY_STARTED'

    def __init__(self):
        super().__init__('Game has already started')


class AlreadyVotedError(DomainError):
    code = 'ALREADY_VOTED'

    def __init__(self):
        super().__init__('Player has already voted')


class InvalidVoteTargetError(DomainError):
    code = 'INVALID_VOTE_TARGET'

    def __init__(self):
        super().__init__('Invalid vote target')


class PlayerNotFoundError(DomainError):
    code = 'PLAYER_NOT_FOUND'

    def __init__(self):
        super().__init__('Player not found')


class AlreadyInRoomError(DomainError):
    code = 'ALREADY_IN_ROOM'

    def __init__(self):
        super().__init__('Player is already in a room')


class InvalidStateError(DomainError):
    code = 'INVALID_STATE'

    def __init__(self, message):
        super().__init__(message)
