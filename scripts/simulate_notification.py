#!/usr/bin/env python3
"""Send a simulated platform notification to a running gateway.

Usage:
    PYTHONPATH=src python scripts/simulate_notification.py [--xml] [--plain] [kind]

``kind`` is ``text`` (default) or one of the event names, e.g. ``get_quota``.
The notification is signed and, unless ``--plain`` is given, encrypted with
the configured EncodingAESKey, exactly as the platform would send it. A reply
is decrypted and printed.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from weapp_notify.config import load_config
from weapp_notify.ingress import codec
from weapp_notify.ingress.cipher import MessageCipher, random_nonce
from weapp_notify.ingress.signature import make_signature
from weapp_notify.models import CommonResult, EncryptedEnvelope, EncryptedReply, MsgType


def build_notification(kind: str) -> CommonResult:
    """Build a minimal notification of the given kind."""
    common = {
        "ToUserName": "gh_simulated",
        "FromUserName": "oSimulatedOpenId",
        "CreateTime": int(time.time()),
    }
    if kind == MsgType.TEXT:
        return CommonResult.model_validate({**common, "MsgType": "text", "Content": "hello", "MsgId": 1})
    return CommonResult.model_validate(
        {**common, "MsgType": "event", "Event": kind, "BizID": "biz_demo", "BizPwd": "pwd_demo"}
    )


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("kind", nargs="?", default="text")
    parser.add_argument("--xml", action="store_true", help="send application/xml instead of JSON")
    parser.add_argument("--plain", action="store_true", help="send in plaintext mode")
    parser.add_argument("--url", default=None, help="gateway URL (default: from config)")
    args = parser.parse_args()

    config = load_config()
    content_type = codec.ContentType.XML if args.xml else codec.ContentType.JSON
    url = args.url or f"http://127.0.0.1:{config.port}{config.path}"

    body = codec.encode(build_notification(args.kind), content_type)
    params: dict[str, str] = {}
    cipher = MessageCipher(config.aes_key, config.app_id, config.token)

    if not args.plain:
        timestamp = str(int(time.time()))
        nonce = random_nonce()
        wrapper = cipher.encrypt_message(body, int(timestamp))
        body = codec.encode(EncryptedEnvelope(encrypt=wrapper.encrypt), content_type)
        params = {
            "encrypt_type": "aes",
            "timestamp": timestamp,
            "nonce": nonce,
            "msg_signature": make_signature(config.token, timestamp, nonce, wrapper.encrypt),
        }

    response = httpx.post(url, params=params, content=body, headers={"Content-Type": content_type})
    print(f"HTTP {response.status_code} {response.headers.get('content-type', '')}")

    if not response.content:
        print("(no reply body)")
        return
    if response.status_code != 200 or args.plain:
        print(response.text)
        return

    reply = codec.decode(response.content, content_type, EncryptedReply)
    print(cipher.decrypt_message(reply.encrypt).decode("utf-8"))


if __name__ == "__main__":
    main()
