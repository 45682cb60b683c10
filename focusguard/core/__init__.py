# Control layer of the focus monitoring engine
