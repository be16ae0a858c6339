"""Side-by-side figure of the input and both pipeline outputs."""

import matplotlib.pyplot as plt


def save_preview(original, flipped, blurred, path, window=None):
    fig = plt.figure(figsize=(15, 5))

    panels = [
        (original, 'Input'),
        (flipped, 'Horizontal Flip'),
        (blurred, f'Box Blur ({window}x{window})' if window else 'Box Blur'),
    ]
    for i, (image, title) in enumerate(panels, start=1):
        ax = plt.subplot(1, 3, i)
        ax.imshow(image, cmap='gray', vmin=0, vmax=255)
        ax.set_title(title, fontsize=14, fontweight='bold')
        ax.axis('off')

    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close(fig)
