# report.py
"""Plain-text settings and statistics blocks for a finished run."""


def format_settings(config):
    lines = ["*** CACHE SETTINGS ***"]
    if config.split:
        lines.append("  Split I- D-cache")
        lines.append(f"  I-cache size: \t{config.isize}")
        lines.append(f"  D-cache size: \t{config.dsize}")
    else:
        lines.append("  Unified I- D-cache")
        lines.append(f"  Size: \t{config.size}")
    lines.append(f"  Associativity: \t{config.associativity}")
    lines.append(f"  Block size: \t{config.block_size}")
    lines.append("  Write policy: \t" + ("WRITE BACK" if config.write_back else "WRITE THROUGH"))
    lines.append("  Allocation policy: \t"
                 + ("WRITE ALLOCATE" if config.write_allocate else "WRITE NO ALLOCATE"))
    return "\n".join(lines)


def _stream_block(title, stat):
    lines = [f" {title}",
             f"  accesses:  {stat.accesses}",
             f"  misses:    {stat.misses}"]
    if not stat.accesses:
        lines.append("  miss rate: 0 (0)")
    else:
        lines.append(f"  miss rate: {stat.miss_rate:2.4f} (hit rate {stat.hit_rate:2.4f})")
    lines.append(f"  replace:   {stat.replacements}")
    return lines


def format_stats(stats):
    lines = ["*** CACHE STATISTICS ***"]
    lines += _stream_block("INSTRUCTIONS", stats.instruction)
    lines += _stream_block("DATA", stats.data)
    lines.append(" TRAFFIC")
    lines.append(f"  demand fetch:  {stats.demand_fetches}")
    lines.append(f"  copies back:   {stats.copies_back}")
    return "\n".join(lines)
