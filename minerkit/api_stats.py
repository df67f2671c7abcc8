"""Miner statistics in the shapes served by the monitoring API."""

from __future__ import annotations

import socket
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from minerkit.common_data import get_formatted_hashes, get_formatted_memory, int_to_hex

__all__ = [
    "SolutionStats",
    "SensorReading",
    "MinerStatus",
    "StatSnapshot",
    "miner_stat1",
    "miner_stat_detail",
    "render_stat_html",
]

_HDR0_COLOR = "#e8e8e8"
_HDR1_COLOR = "#f0f0f0"
_ROW0_COLOR = "#f8f8f8"
_ROW1_COLOR = "#ffffff"
_ROWRED_COLOR = "#f46542"

_UINT32_MASK = 0xFFFFFFFF
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


@dataclass
class SolutionStats:
    """Solution counters and the time since the last solution was found."""

    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    seconds_since_last: float = 0.0


@dataclass
class SensorReading:
    """Hardware monitor readings of one device."""

    temp_c: int = 0
    fan_percent: int = 0
    power_w: float = 0.0


@dataclass
class MinerStatus:
    """Telemetry and description of one mining device."""

    index: int
    hashrate: float = 0.0
    solutions: SolutionStats = field(default_factory=SolutionStats)
    sensors: SensorReading = field(default_factory=SensorReading)
    mode: str = "OpenCL"
    pci: str = ""
    device_type: str = "GPU"
    name: str = ""
    total_memory: int = 0
    paused: bool = False
    pause_reason: str = ""


@dataclass
class StatSnapshot:
    """Everything the statistics methods report, taken at one moment."""

    version: str
    runtime: float = 0.0
    connection_uri: str = ""
    pool_host: str = ""
    pool_port: int = 0
    connected: bool = False
    connection_switches: int = 0
    epoch: int = 0
    epoch_changes: int = 0
    difficulty: float = 0.0
    hashrate: float = 0.0
    solutions: SolutionStats = field(default_factory=SolutionStats)
    miners: Sequence[MinerStatus] = ()
    nonce_scrambler: int = 0
    segment_width: int = 40
    tstart: int = 0
    tstop: int = 0
    host_name: str | None = None


def _host_name(snapshot: StatSnapshot) -> str | None:
    if snapshot.host_name is not None:
        return snapshot.host_name
    try:
        return socket.gethostname()
    except OSError:
        return None


def miner_stat1(snapshot: StatSnapshot) -> list[str]:
    """The nine-field summary answered to ``miner_getstat1``."""
    miners = list(snapshot.miners)
    sols = snapshot.solutions
    total_eth = f"{snapshot.hashrate / 1000.0:.0f};{sols.accepted};{sols.rejected}"
    detailed_eth = ";".join(f"{m.hashrate / 1000.0:.0f}" for m in miners)
    detailed_dcr = ";".join("off" for _ in miners)
    temps_fans = ";".join(f"{m.sensors.temp_c};{m.sensors.fan_percent}" for m in miners)
    return [
        snapshot.version,
        str(int(snapshot.runtime // 60)),
        total_eth,
        detailed_eth,
        "0;0;0",
        detailed_dcr,
        temps_fans,
        f"{snapshot.pool_host}:{snapshot.pool_port}",
        f"{sols.failed};0;0;0",
    ]


def _shares(sols: SolutionStats) -> list[int]:
    return [sols.accepted, sols.rejected, sols.failed, int(sols.seconds_since_last)]


def _device_detail(snapshot: StatSnapshot, miner: MinerStatus) -> dict[str, Any]:
    width = snapshot.segment_width
    start = (snapshot.nonce_scrambler + (miner.index << width)) & _UINT64_MASK
    end = (start + (1 << width)) & _UINT64_MASK
    hardware = {
        "pci": miner.pci,
        "type": miner.device_type,
        "name": f"{miner.name} {get_formatted_memory(float(miner.total_memory))}",
        "sensors": [miner.sensors.temp_c, miner.sensors.fan_percent, miner.sensors.power_w],
    }
    mining = {
        "shares": _shares(miner.solutions),
        "paused": miner.paused,
        "pause_reason": miner.pause_reason if miner.paused else None,
        "segment": [int_to_hex(start, 16, True), int_to_hex(end, 16, True)],
        "hashrate": int_to_hex(int(miner.hashrate) & _UINT32_MASK, 8, True),
    }
    return {"_index": miner.index, "_mode": miner.mode, "hardware": hardware, "mining": mining}


def miner_stat_detail(snapshot: StatSnapshot) -> dict[str, Any]:
    """The detailed status answered to ``miner_getstatdetail``."""
    monitors: dict[str, Any] | None = None
    if snapshot.tstop:
        monitors = {"temperatures": [snapshot.tstart, snapshot.tstop]}
    return {
        "devices": [_device_detail(snapshot, m) for m in snapshot.miners],
        "monitors": monitors,
        "connection": {
            "uri": snapshot.connection_uri,
            "connected": snapshot.connected,
            "switches": snapshot.connection_switches,
        },
        "host": {
            "version": snapshot.version,
            "runtime": int(snapshot.runtime),
            "name": _host_name(snapshot),
        },
        "mining": {
            "hashrate": int_to_hex(int(snapshot.hashrate) & _UINT32_MASK, 8, True),
            "epoch": snapshot.epoch,
            "epoch_changes": snapshot.epoch_changes,
            "difficulty": snapshot.difficulty,
            "shares": _shares(snapshot.solutions),
        },
    }


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _header(detail: dict[str, Any]) -> str:
    host = detail["host"]
    runtime = int(host["runtime"])
    hours = runtime // 3600
    minutes = (runtime - hours * 3600) // 60
    return (
        "<!doctype html><html lang=en><head><meta charset=utf-8>"
        '<meta http-equiv="refresh" content="30">'
        f"<title>{_as_string(host.get('name'))}</title>"
        "<style>"
        'body{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,'
        '"Helvetica Neue",Helvetica,Arial,sans-serif;font-size:16px;line-height:1.5;'
        "text-align:center;}"
        "table,td,th{border:1px inset #000;}"
        "table{border-spacing:0;}"
        "td,th{padding:3px;}"
        f"tbody tr:nth-child(even){{background-color:{_ROW0_COLOR};}}"
        f"tbody tr:nth-child(odd){{background-color:{_ROW1_COLOR};}}"
        ".mx-auto{margin-left:auto;margin-right:auto;}"
        f".bg-header1{{background-color:{_HDR1_COLOR};}}"
        f".bg-header0{{background-color:{_HDR0_COLOR};}}"
        f".bg-red{{color:{_ROWRED_COLOR};}}"
        ".right{text-align: right;}"
        "</style>"
        "<meta http-equiv=refresh content=30>"
        "</head><body><table class=mx-auto><thead>"
        "<tr class=bg-header1>"
        f"<th colspan=9>{_as_string(host.get('version'))} - {hours}:{minutes:02d}"
        f"<br>Pool: {_as_string(detail['connection'].get('uri'))}</th>"
        "</tr>"
        "<tr class=bg-header0>"
        "<th>PCI</th><th>Device</th><th>Mode</th><th>Paused</th>"
        "<th class=right>Hash Rate</th><th class=right>Solutions</th>"
        "<th class=right>Temp.</th><th class=right>Fan %</th><th class=right>Power</th>"
        "</tr></thead><tbody>"
    )


def render_stat_html(detail: dict[str, Any]) -> str:
    """An HTML status page built from a ``miner_stat_detail`` result."""
    parts = [_header(detail)]
    total_hashrate = 0.0
    total_power = 0.0
    total_solutions = 0

    for device in detail["devices"]:
        mining = device["mining"]
        hardware = device["hardware"]
        shares = mining["shares"]
        sensors = hardware["sensors"]
        hashrate = float(int(mining["hashrate"], 16))
        power = float(sensors[2])
        total_hashrate += hashrate
        total_power += power
        total_solutions += int(shares[0])

        paused = bool(mining["paused"])
        reason = _as_string(mining.get("pause_reason")) if paused else "No"
        parts.append("<tr" + (' class="bg-red"' if paused else "") + ">")
        parts.append(f"<td>{_as_string(hardware['pci'])}</td>")
        parts.append(f"<td>{_as_string(hardware['name'])}</td>")
        parts.append(f"<td>{_as_string(device['_mode'])}</td>")
        parts.append(f"<td>{reason}</td>")
        parts.append(f"<td class=right>{get_formatted_hashes(hashrate)}</td>")
        parts.append(f"<td class=right>A{shares[0]}:R{shares[1]}:F{shares[2]}</td>")
        parts.append(f"<td class=right>{_as_string(sensors[0])}</td>")
        parts.append(f"<td class=right>{_as_string(sensors[1])}</td>")
        parts.append(f"<td class=right>{power:.2f}</td>")
        parts.append("</tr>")

    parts.append("</tbody>")
    parts.append(
        "<tfoot><tr class=bg-header0><td colspan=4 class=right>Total</td><td class=right>"
        f"{get_formatted_hashes(total_hashrate)}</td><td class=right>{total_solutions}"
        f"</td><td colspan=3 class=right>{total_power:.2f}</td></tfoot>"
    )
    parts.append("</table></body></html>")
    return "".join(parts)