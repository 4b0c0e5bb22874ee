import argparse
import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from gh_cms_server.github.client import GitHubBlobStore, close_http_client, get_http_client
from gh_cms_server.index.collection import CollectionIndex
from gh_cms_server.store.transaction import BranchTransaction


async def rebuild(owner: str, repo: str, type_slug: str) -> None:
    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        print("GITHUB_TOKEN is not set.")
        sys.exit(1)

    store = GitHubBlobStore(get_http_client(), token, owner, repo)

    print(f"Rebuilding index pages for {owner}/{repo}: {type_slug}")
    try:
        async with BranchTransaction(store, f"Rebuild index for {type_slug}") as txn:
            index = CollectionIndex(txn, type_slug)
            # Loading runs the order migration for collections that predate it.
            config = await index.load_config()
            pages = await index.regenerate_shards_from(config, 1)
            await index.save_config(config, f"Update config for {type_slug}")
    finally:
        await close_http_client()

    print(f"Wrote {len(pages)} page(s); {config.total_items} item(s) indexed.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Regenerate every index page of a collection.")
    parser.add_argument("owner")
    parser.add_argument("repo")
    parser.add_argument("type_slug")
    args = parser.parse_args()

    asyncio.run(rebuild(args.owner, args.repo, args.type_slug))


if __name__ == "__main__":
    main()
