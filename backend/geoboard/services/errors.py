class LeaderboardError(Exception):
    pass


class InvalidInputError(LeaderboardError):
    pass


class IdentityError(InvalidInputError):
    """Neither or both of player_id/guest_id were supplied."""


class NotFoundError(LeaderboardError):
    pass
