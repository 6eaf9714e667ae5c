class TransactionFailed(Exception):
    """A payment did not reach confirmation.

    Covers signing refusal, submission failure, a reverted receipt and
    confirmation timeout. The underlying error is chained as ``__cause__``.
    No value is known to have moved; the user may start over.
    """

    def __init__(self, message, transaction_id=None):
        super().__init__(message)
        self.transaction_id = transaction_id


class ConfirmationTimeout(TransactionFailed):
    def __init__(self, transaction_id, max_rounds):
        super().__init__(
            f"Transaction {transaction_id} not confirmed within {max_rounds} rounds",
            transaction_id=transaction_id,
        )
        self.max_rounds = max_rounds


class SigningRefused(Exception):
    """The signer declined or failed to sign; any signer error is chained."""
