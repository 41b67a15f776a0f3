# main.py
import sys
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from voicetally.Config import load_config, merge_config
from voicetally.LoggingSetup import setup_logging
from voicetally.PathResolver import PathResolver
from voicetally.TallyStore import TallyStore
from voicetally.persistence.JsonFileStorage import JsonFileStorage
from voicetally.types import TallyState

CONFIG_FILE_NAME = "tally_config.json"


def parse_args(argv: List[str]) -> Dict[str, Any]:
    """
    Parse command line flags.

    Supported: -v, --config=PATH, --port=N, --data-dir=PATH

    Args:
        argv: Arguments without the program name

    Returns:
        Dictionary with verbose, config, port and data_dir keys
    """
    options: Dict[str, Any] = {'verbose': False, 'config': None, 'port': None, 'data_dir': None}

    for arg in argv:
        if arg == "-v":
            options['verbose'] = True
        elif arg.startswith("--config="):
            options['config'] = Path(arg.split("=", 1)[1])
        elif arg.startswith("--port="):
            options['port'] = int(arg.split("=", 1)[1])
        elif arg.startswith("--data-dir="):
            options['data_dir'] = Path(arg.split("=", 1)[1])
        else:
            raise ValueError(f"Unknown argument: {arg}")

    return options


def read_config(config_path: Path) -> Dict:
    """Load the config file, falling back to built-in defaults when it is missing."""
    try:
        return load_config(str(config_path))
    except FileNotFoundError:
        logging.warning(f"Config file not found: {config_path}, using defaults")
        return merge_config({})


def announce_detections(old_state: TallyState, new_state: TallyState) -> None:
    """Store observer printing each new detection."""
    if len(new_state.history) <= len(old_state.history):
        return

    for event in new_state.history[len(old_state.history):]:
        target = new_state.find_target(event.target_word_id)
        if target is not None:
            print(f"+1 {target.word} (heard '{event.matched_term}') -> {target.count}", flush=True)


def run(argv: List[str], script_path: Optional[Path] = None) -> int:
    options = parse_args(argv)

    path_resolver = PathResolver(script_path or Path(__file__), data_dir_override=options['data_dir'])
    paths = path_resolver.paths
    path_resolver.ensure_local_dir_structure()

    is_frozen = getattr(sys, 'frozen', False)
    setup_logging(paths.logs_dir, verbose=options['verbose'], is_frozen=is_frozen)

    config = read_config(options['config'] or path_resolver.get_config_path(CONFIG_FILE_NAME))
    if options['port'] is not None:
        config['bridge']['port'] = options['port']

    storage = JsonFileStorage(path_resolver.get_data_path(config['storage']['file_name']))
    store = TallyStore.load_or_default(
        storage,
        storage_key=config['storage']['key'],
        undo_limit=config['history']['undo_limit'],
    )
    store.register_observer(announce_detections)

    # Audio and network stacks are imported only once config and logging are ready
    from voicetally.RecognitionSession import RecognitionSession
    from voicetally.bridge.WebSpeechBridge import WebSpeechBridge
    from voicetally.controllers.TallyConsole import TallyConsole
    from voicetally.sound.MicrophoneCapture import MicrophoneCapture
    from voicetally.sound.ToneNotifier import ToneNotifier

    bridge = WebSpeechBridge(
        host=config['bridge']['host'],
        port=config['bridge']['port'],
        lang=config['recognition']['language'],
    )
    bridge.serve()

    session = RecognitionSession(
        store=store,
        speech_engine=bridge,
        audio_capture=MicrophoneCapture(config, verbose=options['verbose']),
        config=config,
        notifier=ToneNotifier(config),
    )
    console = TallyConsole(store, session)

    print(f"Speech bridge listening on ws://{config['bridge']['host']}:{bridge.port}", flush=True)
    print(f"Open {bridge.client_url} in a browser with speech recognition (e.g. Chrome) to connect the speech client", flush=True)
    print(console.render_status(), flush=True)

    try:
        for line in sys.stdin:
            if line.strip().lower() in ("quit", "exit"):
                break
            output = console.execute(line)
            if output:
                print(output, flush=True)
    finally:
        session.stop()
        bridge.shutdown()

    return 0


if __name__ == "__main__":
    try:
        sys.exit(run(sys.argv[1:]))
    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"ERROR: {type(e).__name__}: {e}")
        import traceback
        logging.error(traceback.format_exc())
        sys.exit(1)
