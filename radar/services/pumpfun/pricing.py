"""Приблизительная цена токена по резервам bonding curve pump.fun.

Это не оракул: цена SOL фиксированная из настроек, а сама формула берёт
отношение виртуальных резервов (constant product x*y=k). Используется только
когда источник не прислал явную цену.
"""

from __future__ import annotations

from config.settings import PricingSettings


class BondingCurvePricer:
    def __init__(self, settings: PricingSettings) -> None:
        self._sol_price_usd = settings.sol_reference_price_usd
        self._total_supply = settings.total_supply
        self._lamports_per_sol = settings.lamports_per_sol
        self._token_scale = 10 ** settings.token_decimals

    @property
    def sol_price_usd(self) -> float:
        return self._sol_price_usd

    def price_from_reserves(self, sol_reserves: float, token_reserves: float) -> float:
        """Цена в USD по резервам, уже приведённым к SOL и целым токенам."""

        if sol_reserves <= 0 or token_reserves <= 0:
            return 0.0
        return (sol_reserves / token_reserves) * self._sol_price_usd

    def price_from_raw_reserves(self, lamports: float, raw_tokens: float) -> float:
        """То же самое для сырых on-chain значений (лампорты и base units)."""

        return self.price_from_reserves(
            lamports / self._lamports_per_sol,
            raw_tokens / self._token_scale,
        )

    def market_cap(self, price_usd: float) -> float:
        return max(price_usd, 0.0) * self._total_supply

    def sol_to_usd(self, amount_sol: float) -> float:
        return max(amount_sol, 0.0) * self._sol_price_usd


__all__ = ["BondingCurvePricer"]
