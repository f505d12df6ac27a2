# examples/01_demo_ambient_glow.py
import asyncio
import logging
import os
import sys

from ambimage.ambilight import Ambimage, load_image
from ambimage.apply import compose_preview
from ambimage.masks import generate_mask

PATH_IN  = sys.argv[1] if len(sys.argv) > 1 else "examples/data/last.jpg"
OUT_DIR  = "examples/out"
PATH_OUT = os.path.join(OUT_DIR, "ambient-glow.png")
PATH_MASK = os.path.join(OUT_DIR, "ambient-glow-mask-left.png")

async def main():
    logging.basicConfig(level=logging.DEBUG)
    os.makedirs(OUT_DIR, exist_ok=True)

    image = await load_image(PATH_IN)

    glow = Ambimage()
    image_id = glow.process(image)
    await glow.wait_idle()       # mask loads + fade-in

    left, right = glow.lights(image_id)
    compose_preview(image, left, right, gap=8).convert("RGB").save(PATH_OUT)

    # the procedural mask on its own, for a quick look at the silhouette
    generate_mask(glow.settings.light_width, image.height, "left").save(PATH_MASK)

    print("Wrote:")
    print("-", PATH_OUT)
    print("-", PATH_MASK)

if __name__ == "__main__":
    asyncio.run(main())
