"""Service layer: matching engine, capital ledger, orchestration and notifications."""
