import json

import dotenv

from nimblebrain import ExecutionTimeoutError, NimbleBrain, NimbleBrainAPIError

dotenv.load_dotenv()

nb = NimbleBrain()

try:
    playbooks = nb.playbooks.list()
    print("Playbooks:", [p.name for p in playbooks])

    queued = nb.playbooks.execute(playbooks[0].id, {"topic": "quarterly report"})
    execution = nb.executions.wait_for_completion(queued.id, timeout_s=120, poll_interval_s=2)
    print(f"{execution.target_name}: {execution.status} in {execution.duration_ms} ms")
    print(json.dumps(execution.result, indent=2, ensure_ascii=False, default=str))
except ExecutionTimeoutError as e:
    print(f"Still running after {e.timeout_s}s, check execution {e.execution_id} later.")
except NimbleBrainAPIError as e:
    if e.is_auth_error:
        print("Check your NIMBLEBRAIN_API_KEY.")
    elif e.is_not_found:
        print(f"Not found: {e.message}")
    else:
        print(e.to_dict())
finally:
    nb.close()
