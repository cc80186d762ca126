# tradeledger

`tradeledger` works with the fills that traders make on Hyperliquid. It can:

* fetch and decode the daily builder-fill files (LZ4-compressed CSV, one
  file per builder per day);
* work out which of a user's fills were routed through a given builder;
* flag users as *tainted* when they traded outside the builder while a
  position was open;
* rank competition participants by volume, realized PnL or return
  percentage, and serve health, trades and leaderboard routes from a small
  Starlette application.

All monetary values are `decimal.Decimal`, so prices, sizes and fees keep
their exact precision.

## Modules

| Module | Contents |
| --- | --- |
| `tradeledger.fills` | `Side`, `UserFill`, `convert_fill`, `convert_fills` |
| `tradeledger.builder_fill` | `BuilderFill`, `BuilderFillSide` |
| `tradeledger.parser` | `parse_builder_fills` |
| `tradeledger.enricher` | `FillEnricher` |
| `tradeledger.client` | `BuilderDataClient`, `decompress_lz4`, `STATS_BASE_URL` |
| `tradeledger.taint` | `PositionLifecycleTracker`, `TaintAnalysisResult`, `analyze_user_taint`, `analyze_user_taint_with_ids` |
| `tradeledger.leaderboard` | `LeaderboardMetric`, `UserStats`, `LeaderboardEntry`, `LeaderboardConfig`, `BuilderFillChecker`, `NoBuilderChecker`, `FillEnricherChecker`, `calculate_user_stats`, `calculate_leaderboard`, `rank_leaderboard` |
| `tradeledger.state` | `CompetitionConfig`, `AppState` |
| `tradeledger.schemas` | request and response shapes of the HTTP routes |
| `tradeledger.app` | `create_app`, `fetch_builder_fills` and the route handlers |
| `tradeledger.errors` | the exception hierarchy |

## User fills

`convert_fill` turns one raw API fill (a mapping with the keys `coin`,
`time`, `px`, `sz`, `side`, `fee`, `closedPnl`, `tid`, `oid`, `crossed` and
`dir`) into a frozen `UserFill`. The side may be `B`/`Bid` (buy) or
`A`/`Ask` (sell); anything else raises `ValueError`. `convert_fills`
converts a sequence and keeps its order.

## Builder fill data

Builder fills are published once a day, about 24 hours late, under
`STATS_BASE_URL` at the path

    /Mainnet/builder_fills/{builder_address}/{YYYYMMDD}.csv.lz4

The builder address in that path must be lower case. `BuilderDataClient`
lower-cases it for you and raises `InvalidAddressError` if it does not start
with `0x`. `build_url(date)` gives the URL for one day.

`await client.fetch_fills(date)` downloads, decompresses and parses one day.
It raises `NotFoundError` for HTTP 403 or 404, `HttpError` for other HTTP or
network failures, `DecompressionError` for corrupt LZ4 data and
`CsvParseError` for bad CSV. `await client.fetch_fills_range(start, end)`
covers every day from `start` to `end` inclusive, skips days that raise
`NotFoundError`, and returns all fills sorted by time.

You can also decode a CSV you already have:

```python
from tradeledger.parser import parse_builder_fills
from tradeledger.enricher import FillEnricher

csv_bytes = (
    b"time,user,coin,side,px,sz,crossed,special_trade_type,tif,is_trigger,"
    b"counterparty,closed_pnl,twap_id,builder_fee\n"
    b"2026-01-10T00:00:07Z,0x00000000000000000000000000000000000000aa,SOL,Bid,"
    b"135.88,0.23,false,Na,Alo,false,0x00000000000000000000000000000000000000bb,"
    b"0,0,0.003125\n"
)

fills = parse_builder_fills(csv_bytes)
print(fills[0].notional_value())      # 31.2524

enricher = FillEnricher(fills)
print(enricher.total_fills())         # 1
print(enricher.total_builder_fees())  # 0.003125
```

## Matching fills to a builder

The builder CSV has no trade ID. `FillEnricher` therefore matches a user's
fill to a builder fill on a composite key:

* the user address (case-insensitive);
* the coin (case-insensitive);
* the timestamp, truncated to the second;
* the exact size;
* the exact price;
* the side.

Use `is_builder_fill`, `get_builder_fill` and `get_builder_fee` with a
`UserFill` and the user's address. `fills_for_user`, `fills_for_asset`,
`total_builder_fees` and `total_volume` work over the indexed fills.

## Taint detection

A user is tainted if any fill that did not go through the builder was made
while a position in that asset was open, or opened one.
`analyze_user_taint(fills, is_builder_fill)` sorts the fills by time,
replays them through a `PositionLifecycleTracker`, and returns a
`TaintAnalysisResult` holding the tainted flag, the tainted assets, fill
counts and the time of the first tainted fill.
`analyze_user_taint_with_ids` does the same with a set of builder trade IDs.

## Leaderboards

`calculate_user_stats` computes, for one user, volume (price × size),
realized PnL (closed PnL minus fees), trade count, builder fill count and,
when a capital cap is given, the return percentage against it. A coin
filter keeps only that asset's fills. In builder-only mode only builder
fills count towards these metrics; taint is always judged on all of the
(coin-filtered) fills.

`await calculate_leaderboard(indexer, users, config, checker)` fetches every
user's fills concurrently; a user whose fetch raises `IndexerError` is kept
with zero stats. `rank_leaderboard(stats, metric, builder_only)` sorts in
descending order of the chosen `LeaderboardMetric` (ties keep their input
order) and numbers the ranks from 1.

`LeaderboardMetric.parse` accepts, case-insensitively, `volume`, `pnl`,
and `returnPct`, `return_pct` or `return`.

## HTTP application

`create_app(state)` builds a Starlette application from an `AppState`. It
has these routes:

* `GET /health` returns the status and version.
* `GET /v1/trades?user=0x…&from_ms=…&to_ms=…&asset=…&limit=…` returns a
  user's fills, optionally filtered to one asset. The default limit is 100
  and the maximum is 1000; `has_more` tells whether fills were cut off.
* `GET /v1/leaderboard?metric=…&coin=…&fromMs=…&toMs=…&builderOnly=…&maxStartCapital=…`
  returns the competition leaderboard. The `returnPct` metric requires both
  `fromMs` and `maxStartCapital`. When a target builder is configured,
  builder fills are downloaded for every day of the range (the last seven
  days up to today when no range is given).

`CompetitionConfig.from_env` reads the competition settings from the
environment (or from a mapping passed to it):

* `COMPETITION_USERS` is a comma-separated list of addresses. The
  leaderboard route answers 400 until it is set.
* `TARGET_BUILDER` is the builder address. It is lower-cased when read.
* `BUILDER_ONLY` turns on builder-only mode when set to `true`.

Errors come back as JSON bodies of the form
`{"error": "bad_request", "details": "…"}`. Internal errors leave out the
details.

## What is not included

* There is no indexer that fetches a user's fills from the exchange. The
  `indexer` in `AppState` must be supplied by you: an object with
  `async get_user_fills(user, from_ms, to_ms)` that returns a list of
  `UserFill` and raises `IndexerError` on failure.
* There is no per-user PnL summary or PnL route; the application serves only
  the three routes above.
* There is no command that starts a server; serve the application from
  `create_app` with an ASGI server of your choice.