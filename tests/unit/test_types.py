from droplet_router.types import ClassificationResult


def test_high_confidence_starts_at_point_six() -> None:
    assert ClassificationResult(topic="Bugs", confidence=0.6).is_high_confidence is True
    assert ClassificationResult(topic="Bugs", confidence=0.59).is_high_confidence is False
    assert ClassificationResult.uncategorized().is_high_confidence is False
