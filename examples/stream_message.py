import sys

import dotenv

from nimblebrain import NimbleBrain

dotenv.load_dotenv()

nb = NimbleBrain()

agents = nb.agents.list()
if not agents:
    sys.exit("No agents in this workspace")

agent = agents[0]
conversation = nb.conversations.create(agent.id, "Streaming example")
print(f"Talking to {agent.name} ({agent.id}) in conversation {conversation.id}\n")

with nb.messages.stream(agent.id, conversation.id, "Explain in one paragraph what a playbook is") as events:
    for event in events:
        if event.type == "content":
            print(event.text, end="", flush=True)
        elif event.type == "tool.start":
            print(f"\n[using tool: {event.data.get('display') or event.data.get('tool')}]")
        elif event.type == "error":
            print(f"\n[error: {event.data}]")
        elif event.type == "done":
            print("\n\nComplete!")

nb.close()
