"""
Generate the splash screen image for ringweave.
Renders a Swirl lattice from the generator with a loading caption underneath.
"""
from PIL import Image as PILImage, ImageDraw, ImageFont, ImageOps

from config import ArtSettings, ExportOptions, Strategy
from frame_renderer import render_frame


SPLASH_BACKGROUND = (26, 26, 46, 255)  # #1a1a2e
ART_SIZE = 240


def splash_art_settings() -> ArtSettings:
    return ArtSettings(
        grid_end_ring=5,
        symmetry_sides=7,
        strategy=Strategy.SWIRL,
        connection_end_ring=5,
        tangential_step=2,
        radial_twist=0.4,
        line_width=3.0,
        dot_size=0.0,
        curvature=0.3,
        seed=7,
    )


def create_splash_screen(path: str = "splash_screen.png", caption: str = "Please wait, loading ringweave...") -> PILImage.Image:
    """Create a splash screen with generated art and loading text."""
    # Black-on-transparent art, recoloured white for the dark background
    art = render_frame(splash_art_settings(), ExportOptions(width=ART_SIZE, height=ART_SIZE, with_alpha=True))
    mask = art.getchannel("A")
    white = PILImage.new("RGBA", art.size, (255, 255, 255, 255))

    font = ImageFont.load_default()
    probe = ImageDraw.Draw(PILImage.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), caption, font=font)
    text_w, text_h = right - left, bottom - top

    splash_width = max(ART_SIZE, text_w) + 40
    splash_height = ART_SIZE + text_h + 50
    splash = PILImage.new("RGBA", (splash_width, splash_height), SPLASH_BACKGROUND)

    art_x = (splash_width - ART_SIZE) // 2
    art_y = 15
    splash.paste(white, (art_x, art_y), mask)

    draw = ImageDraw.Draw(splash)
    text_x = (splash_width - text_w) // 2
    text_y = art_y + ART_SIZE + 15
    draw.text((text_x + 1, text_y + 1), caption, font=font, fill=(0, 0, 0, 255))
    draw.text((text_x, text_y), caption, font=font, fill=(255, 255, 255, 255))

    splash = ImageOps.expand(splash, border=1, fill=(60, 60, 90, 255))
    splash.save(path)
    print(f"Splash screen created: {splash.width}x{splash.height}")
    print(f"Saved to: {path}")
    return splash


if __name__ == "__main__":
    create_splash_screen()
