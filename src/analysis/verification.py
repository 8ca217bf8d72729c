"""Verification tiers from the number of agreeing independent passes.

Shared by the contradiction engine (agreement across detector passes) and the
analysis oracle (agreement across independent oracle invocations).
"""

from src.schema import VerificationTier

VERIFICATION_PASSES = 3

VERIFIED: VerificationTier = "Verified (3/3)"
CONSENSUS: VerificationTier = "Consensus (2/3)"
INCONCLUSIVE: VerificationTier = "Inconclusive (≤1/3)"


def classify(count: int) -> VerificationTier:
    """Map the number of agreeing passes (out of three) to a tier.

    Raises:
        ValueError: If count is negative
    """
    if count < 0:
        raise ValueError("count must be >= 0")
    if count >= VERIFICATION_PASSES:
        return VERIFIED
    if count == VERIFICATION_PASSES - 1:
        return CONSENSUS
    return INCONCLUSIVE
