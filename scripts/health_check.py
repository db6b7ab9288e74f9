#!/usr/bin/env python3
"""
Health check script for the GestureVoice bridge
"""

import argparse
import asyncio
import sys
from datetime import datetime
from typing import Dict, Tuple

import aiohttp

# Endpoints probed, relative to the base URL
CHECKS = {
    "health": "/health/",
    "ready": "/health/ready",
    "live": "/health/live",
    "gestures": "/api/sign-language/gestures",
    "voices": "/api/voice/voices",
}


async def check_endpoint(session: aiohttp.ClientSession, name: str, url: str) -> Tuple[str, bool, Dict]:
    """Check a single endpoint"""
    try:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as response:
            if response.status == 200:
                data = await response.json()
                return name, True, data
            return name, False, {"error": f"HTTP {response.status}"}
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        return name, False, {"error": str(e) or type(e).__name__}


async def run_health_checks(base_url: str) -> Dict[str, Tuple[bool, Dict]]:
    results = {}
    async with aiohttp.ClientSession() as session:
        tasks = [check_endpoint(session, name, base_url.rstrip("/") + path) for name, path in CHECKS.items()]
        for name, healthy, data in await asyncio.gather(*tasks):
            results[name] = (healthy, data)
    return results


def print_results(results: Dict[str, Tuple[bool, Dict]]) -> int:
    """Print results; returns the process exit code"""
    print(f"\n🏥 GestureVoice Bridge Health Check")
    print(f"📅 {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)
    
    healthy_count = 0
    for name, (healthy, data) in results.items():
        status = "✅ HEALTHY" if healthy else "❌ UNHEALTHY"
        print(f"{name.upper():12} | {status}")
        
        if healthy:
            healthy_count += 1
            if "version" in data:
                print(f"             | Version: {data['version']}")
            if "connected_clients" in data:
                print(f"             | Connected clients: {data['connected_clients']}")
            if "total" in data:
                print(f"             | Entries: {data['total']}")
        else:
            print(f"             | Error: {data.get('error', 'Unknown error')}")
        print("-" * 60)
    
    print(f"\n📊 OVERALL STATUS: {healthy_count}/{len(results)} checks passed")
    if healthy_count == len(results):
        print("🎉 Bridge operational!")
        return 0
    print("⚠️  Bridge needs attention")
    return 1


async def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default="http://localhost:3001", help="Bridge base URL")
    args = parser.parse_args()
    
    print("🔍 Starting health checks...")
    results = await run_health_checks(args.url)
    sys.exit(print_results(results))


if __name__ == "__main__":
    asyncio.run(main())
