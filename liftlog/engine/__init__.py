"""Active workout session engine: model mutations, clocks, PR scoring and commit."""
