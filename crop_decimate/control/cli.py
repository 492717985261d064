#!/usr/bin/env python3
"""
CLI para enviar image requests y comandos vía MQTT
===================================================

Uso:
    crop-decimate-ctl request --binning 2 2 --roi 100 50 200 100 --mode once
    crop-decimate-ctl request --mode rate_limited --frequency 30
    crop-decimate-ctl request --mode free_run
    crop-decimate-ctl command status
    crop-decimate-ctl command stop
"""
import sys
import json
import argparse
from typing import Any, Dict

import paho.mqtt.client as mqtt


def build_request_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """Namespace de argparse → payload de image request"""
    x_offset, y_offset, width, height = args.roi
    binning_x, binning_y = args.binning
    return {
        "binning_x": binning_x,
        "binning_y": binning_y,
        "roi": {
            "x_offset": x_offset,
            "y_offset": y_offset,
            "width": width,
            "height": height,
        },
        "mode": args.mode,
        "publish_frequency": args.frequency,
    }


def send_message(broker: str, port: int, topic: str, message: Dict[str, Any]) -> bool:
    """Publica un mensaje JSON (QoS 1) y desconecta"""
    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id="crop_decimate_cli",
        protocol=mqtt.MQTTv5,
    )

    print(f"🔌 Conectando a {broker}:{port}...")
    try:
        client.connect(broker, port, keepalive=60)
    except Exception as e:
        print(f"❌ Error conectando: {e}")
        return False

    client.loop_start()
    payload = json.dumps(message)
    print(f"📤 Enviando a {topic}: {payload}")
    info = client.publish(topic, payload, qos=1)
    info.wait_for_publish(timeout=5.0)

    ok = info.rc == mqtt.MQTT_ERR_SUCCESS
    if ok:
        print("✅ Mensaje enviado exitosamente")
    else:
        print(f"❌ Error enviando mensaje: {info.rc}")

    client.loop_stop()
    client.disconnect()
    return ok


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CLI para controlar el servicio crop/decimate vía MQTT"
    )
    parser.add_argument("--broker", default="localhost", help="MQTT broker host (default: localhost)")
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port (default: 1883)")

    sub = parser.add_subparsers(dest="action", required=True)

    req = sub.add_parser("request", help="Envía una image request")
    req.add_argument("--topic", default="camera_out/image_request",
                     help="Requests topic (default: camera_out/image_request)")
    req.add_argument("--binning", type=int, nargs=2, default=[1, 1], metavar=("X", "Y"),
                     help="Decimación horizontal/vertical")
    req.add_argument("--roi", type=int, nargs=4, default=[0, 0, 0, 0],
                     metavar=("X", "Y", "W", "H"),
                     help="ROI en píxeles (W/H 0 = hasta el borde)")
    req.add_argument("--mode", default="free_run",
                     help="once | rate_limited | free_run (o 0/1/2)")
    req.add_argument("--frequency", type=float, default=0.0,
                     help="Frecuencia (Hz) para rate_limited")

    cmd = sub.add_parser("command", help="Envía un comando de servicio")
    cmd.add_argument("command", choices=["status", "stats", "stop"])
    cmd.add_argument("--topic", default="camera_out/commands",
                     help="Commands topic (default: camera_out/commands)")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.action == "request":
        message = build_request_payload(args)
    else:
        message = {"command": args.command}

    success = send_message(args.broker, args.port, args.topic, message)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
