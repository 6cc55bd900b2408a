#!/usr/bin/env python3
"""
Main entry point for the voice interview loop.
Allows running the package with: python -m voice_interview
"""
import os
import sys
import asyncio
import dataclasses
from typing import Any, Dict, List, Optional

from .config import get_config, Config
from .interview import (
    TurnOrchestrator, InterviewProfile, EventType, InterviewEvent, SessionSummary
)
from .infrastructure import (
    Microphone, Speaker, SpeechSynthesizer, VertexRestClient,
    GeminiConversationEndpoint, HttpConversationEndpoint, FeedbackGenerator,
    JsonSessionStore, UsageLedger
)
from .utils import setup_logging


def parse_args(argv: List[str]) -> Dict[str, Any]:
    """Hand-parse the supported --flag and --key=value arguments."""
    options: Dict[str, Any] = {
        "use_tts": None,
        "threshold": None,
        "silence_ms": None,
        "profile": {},
        "session": None,
        "feedback": False,
    }
    profile_keys = {
        "--company=": "company_name",
        "--role=": "role",
        "--focus=": "interview_focus",
        "--name=": "applicant_name",
    }
    for arg in argv:
        if arg in ("--text", "--no-tts"):
            options["use_tts"] = False
        elif arg in ("--tts", "--speech"):
            options["use_tts"] = True
        elif arg == "--feedback":
            options["feedback"] = True
        elif arg.startswith("--threshold="):
            try:
                options["threshold"] = max(0.0, min(1.0, float(arg.split("=", 1)[1])))
            except ValueError:
                raise ValueError("Invalid threshold value. Use --threshold=0.0 to --threshold=1.0")
        elif arg.startswith("--silence-ms="):
            try:
                options["silence_ms"] = int(arg.split("=", 1)[1])
            except ValueError:
                raise ValueError("Invalid silence duration. Use --silence-ms=<milliseconds>")
            if options["silence_ms"] <= 0:
                raise ValueError("Silence duration must be positive")
        elif arg.startswith("--session="):
            options["session"] = arg.split("=", 1)[1] or None
        else:
            for prefix, key in profile_keys.items():
                if arg.startswith(prefix):
                    options["profile"][key] = arg.split("=", 1)[1] or None
                    break
    return options


def apply_overrides(config: Config, options: Dict[str, Any]) -> Config:
    changes: Dict[str, Any] = {}
    if options["use_tts"] is not None:
        changes["enable_tts"] = options["use_tts"]
    if options["threshold"] is not None:
        changes["silence_threshold"] = options["threshold"]
    if options["silence_ms"] is not None:
        changes["silence_duration_ms"] = options["silence_ms"]
    return dataclasses.replace(config, **changes) if changes else config


def build_orchestrator(config: Config) -> TurnOrchestrator:
    """Wire the real collaborators together."""
    client = None
    if config.google_cloud_project:
        client = VertexRestClient(
            project=config.google_cloud_project,
            location=config.vertex_location,
            model=config.model_name,
            credentials_json=config.google_application_credentials,
        )

    if config.uses_remote_endpoint:
        endpoint = HttpConversationEndpoint(config.endpoint_url)
    else:
        synthesizer = None
        if config.enable_tts:
            synthesizer = SpeechSynthesizer(
                voice=config.tts_voice,
                language_code=config.language_code,
                credentials_json=config.google_application_credentials,
            )
        endpoint = GeminiConversationEndpoint(client, synthesizer)

    return TurnOrchestrator(
        endpoint=endpoint,
        microphone=Microphone(),
        speaker=Speaker(),
        store=JsonSessionStore(config.workdir),
        usage=UsageLedger(os.path.join(config.workdir, "usage.json"), config.plan_limit_minutes),
        config=config,
        feedback_generator=FeedbackGenerator(client) if client is not None else None,
    )


def print_event(event: InterviewEvent) -> None:
    """Console status lines."""
    data = event.data
    if event.event_type == EventType.SESSION_STARTED:
        print(f"🤖 {data['greeting']}")
    elif event.event_type == EventType.RECORDING_STARTED:
        print("🎧 Listening (will send when you pause)...")
    elif event.event_type == EventType.UTTERANCE_CAPTURED:
        print("🔍 Processing...")
    elif event.event_type == EventType.TURN_COMPLETED:
        print(f"💬 \"{data['transcript'] or '(no transcript)'}\"")
        print(f"🤖 {data['reply_text']}")
    elif event.event_type == EventType.PHASE_CHANGED:
        print(f"📋 Phase: {data['current']}")
    elif event.event_type == EventType.SESSION_DENIED:
        print(f"🚫 Usage limit reached ({data['current_usage']}/{data['plan_limit']} minutes)")
    elif event.event_type == EventType.ERROR_OCCURRED:
        print(f"❌ {data['error_message']}")
    elif event.event_type == EventType.SESSION_STOPPED:
        print(f"⏹️  Session ended ({data['reason']}): {data['turn_count']} turns, {data['billed_minutes']} minute(s)")
    elif event.event_type == EventType.FEEDBACK_SAVED:
        print(f"📝 Feedback saved ({data['item_count']} question(s))")


def print_summary(summary: Optional[SessionSummary]) -> None:
    if summary is None:
        return
    print("=" * 50)
    print(f"📊 Phase reached: {summary.phase.label}")
    for kind, value in summary.facts.to_dict().items():
        print(f"   {kind}: {value}")
    if summary.errors:
        print(f"⚠️  {len(summary.errors)} error(s) during the session - check log for details")


async def run(orchestrator: TurnOrchestrator, profile: InterviewProfile, session_ref: Optional[str]) -> int:
    if not await orchestrator.start(profile, session_ref):
        return 1
    try:
        while orchestrator.is_active:
            await asyncio.sleep(0.5)
    finally:
        summary = orchestrator.stop()
        print_summary(summary)
    return 0


async def report_feedback(orchestrator: TurnOrchestrator) -> None:
    print("📝 Generating feedback...")
    data = await orchestrator.generate_feedback()
    if data is None:
        return
    for item in data.get("feedback", []):
        score = f" ({item['score']}/5)" if item.get("score") else ""
        print(f"❓ {item['question']}{score}")
        print(f"   {item['evaluation']}")
        if item.get("advice"):
            print(f"   💡 {item['advice']}")
    print(f"🗒️  {data['overallFeedback']}")


def main():
    """Command-line interface for the interview loop."""
    try:
        config = get_config()
        options = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    config = apply_overrides(config, options)
    setup_logging(config.log_file, config.log_level)

    profile = InterviewProfile(**options["profile"])

    if config.enable_tts:
        print("🔊 TTS Mode: interviewer replies are spoken aloud (default)")
        print("   (Use --text or --no-tts to disable speech)")
    else:
        print("📝 Text Mode: replies are displayed as text only")
    print(f"🎚️  Silence threshold {config.silence_threshold:.2f}, pause {config.silence_duration_ms}ms")
    print(f"🏢 {profile.heading}")
    print(f"📝 Detailed logs: {config.log_file}")
    print("   Press Ctrl+C to end the interview")
    if options["feedback"]:
        print("   Feedback will be generated when the interview ends")
    print("=" * 50)

    orchestrator = build_orchestrator(config)
    orchestrator.event_bus.subscribe_all(print_event)

    try:
        exit_code = asyncio.run(run(orchestrator, profile, options["session"]))
    except KeyboardInterrupt:
        exit_code = 0

    if options["feedback"] and exit_code == 0:
        asyncio.run(report_feedback(orchestrator))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
