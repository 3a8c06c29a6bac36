import sys
import pygame
import imageio

from constants import FONT_SIZE, HEADER_WIDTH, INITIAL_HEIGHT, INITIAL_WIDTH, TOTAL_COLUMNS, TOTAL_ROWS
from grid_engine import GridEngine
from gridwizard import GRID_TOP, GridView
from viewport import Viewport

VIDEO_PATH = 'output_video.mp4'


def read_int_option(argv, name, default):
    """Value following `name` in argv (e.g. --rows 500), or default."""
    if name in argv:
        index = argv.index(name)
        try:
            value = int(argv[index + 1])
        except (IndexError, ValueError):
            print(f"Ignoring {name}: expected a positive integer")
            return default
        if value > 0:
            return value
        print(f"Ignoring {name}: expected a positive integer")
    return default


def main(argv=None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    rows = read_int_option(argv, '--rows', TOTAL_ROWS)
    cols = read_int_option(argv, '--cols', TOTAL_COLUMNS)
    invalidation = 'dependents' if '--track-dependents' in argv else 'global'
    # Check if --output-video is in the command line arguments
    output_video = '--output-video' in argv

    pygame.init()
    pygame.key.set_repeat(300, 50)  # Start repeating after 300ms, repeat every 50ms thereafter
    screen = pygame.display.set_mode((INITIAL_WIDTH, INITIAL_HEIGHT), pygame.RESIZABLE)
    pygame.display.set_caption('Grid Wizard')
    clock = pygame.time.Clock()
    font = pygame.font.SysFont('monospace', FONT_SIZE)

    viewport = Viewport(INITIAL_WIDTH - HEADER_WIDTH, INITIAL_HEIGHT - GRID_TOP, total_rows=rows, total_cols=cols)
    view = GridView(font, INITIAL_WIDTH, INITIAL_HEIGHT, engine=GridEngine(invalidation=invalidation),
                    viewport=viewport)
    print(f"Grid Wizard: {rows} x {cols} cells, {invalidation} cache invalidation")

    # Create a list to store frames if output_video is True
    frames = [] if output_video else None

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.VIDEORESIZE:
                screen = pygame.display.set_mode(event.size, pygame.RESIZABLE)
                view.resize(*event.size)
            else:
                view.handle_event(event)

        view.update_cursor()
        view.draw(screen)
        pygame.display.flip()

        # Capture the frame and append to the list if output_video is True
        if output_video:
            frame_data = pygame.surfarray.array3d(pygame.display.get_surface())
            frames.append(frame_data.transpose([1, 0, 2]))

        clock.tick(60)

    pygame.quit()

    # Save frames as MP4 video if output_video is True
    if output_video and frames:
        try:
            imageio.mimwrite(VIDEO_PATH, frames, fps=60)
            print(f"Video saved to {VIDEO_PATH}")
        except (OSError, ValueError, RuntimeError) as e:
            print(f"Error saving video {VIDEO_PATH}: {e}")


if __name__ == "__main__":
    main()
