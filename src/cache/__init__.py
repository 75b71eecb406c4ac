"""SimHash fingerprints, cache keys and the similarity-gated record store."""
