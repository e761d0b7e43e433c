"""
Polling / normalization / alerting core.

    registry    -> which parks we poll (parkwatch.data.parks)
    themeparks  -> HTTP client for the upstream API
    fetcher     -> live + schedule for one park
    normalizer  -> raw payload -> Venue / Attraction / WaitSample
    aggregator  -> one single-flight cycle across all parks
    alerts      -> threshold rules with per-rule cooldown
    dispatch    -> notification delivery contract
"""
