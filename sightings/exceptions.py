class SightingsError(Exception):
    pass


class NotFound(SightingsError):
    pass


class UnknownReward(SightingsError):
    pass


class InsufficientFunds(SightingsError):
    def __init__(self, user_id: str, balance: int, cost: int):
        super().__init__(f"Balance {balance} of {user_id} is below cost {cost}")
        self.user_id = user_id
        self.balance = balance
        self.cost = cost


class Unauthorized(SightingsError):
    pass


class StorageFailure(SightingsError):
    pass


class NetworkFailure(SightingsError):
    pass


class InvalidImage(SightingsError):
    pass


class SimulateVerifyUnavailable(SightingsError):
    pass
