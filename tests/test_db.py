import asyncio

import orjson

import db


def test_concurrent_writes_to_one_file_stay_valid(isolated_db):
    target = isolated_db / "job_x" / "job.json"

    async def scenario():
        await asyncio.gather(*(db._write_json(target, {"n": n, "pad": "x" * 2000}) for n in range(30)))

    asyncio.run(scenario())
    assert orjson.loads(target.read_bytes())["n"] in range(30)
    assert list(target.parent.glob("*.tmp")) == []


def test_effective_config_forwards_mock_settings():
    async def scenario():
        await db.save_settings({"aiMode": "mock", "mockKey": "standup", "mockDelayMs": "0", "apiKey": ""})
        return await db.get_effective_config()

    cfg = asyncio.run(scenario())
    assert cfg == {"aiMode": "mock", "useMock": True, "mockKey": "standup", "mockDelayMs": 0}


def test_effective_config_for_llm_mode():
    async def scenario():
        await db.save_settings({"aiMode": "llm", "model": "gpt-4o", "temperature": 0.3})
        return await db.get_effective_config()

    cfg = asyncio.run(scenario())
    assert cfg["useMock"] is False
    assert cfg["model"] == "gpt-4o"
    assert cfg["temperature"] == 0.3
    assert "mockDelayMs" not in cfg
