# Adapters to external collaborators (classifier, camera, audio, storage)
