"""MemeRadar: мониторинг мем-токенов pump.fun."""
