import asyncio

import dotenv

from nimblebrain import NimbleBrain

dotenv.load_dotenv()


async def main() -> None:
    async with NimbleBrain() as nb:
        agents = await nb.agents.alist()
        conversation = await nb.conversations.acreate(agents[0].id)

        async for event in nb.messages.astream(agents[0].id, conversation.id, "Hello!"):
            print(event.type, event.data)


asyncio.run(main())
